"""Pytest configuration and shared fixtures for PII Scout tests.

This module provides auto-use fixtures that ensure test isolation,
particularly for the config directory and the process-wide pattern catalog.
"""

import shutil
import tempfile

import pytest

from piiscout.catalog import get_store


@pytest.fixture(autouse=True)
def isolate_config_directory(monkeypatch):
    """Auto-use fixture that isolates the config directory for each test.

    Points SCOUT_CONFIG_DIR at a fresh temporary directory so saved pattern
    catalogs never touch ~/.config/piiscout, and restores the built-in
    catalog before and after the test.
    """
    temp_config_dir = tempfile.mkdtemp(prefix='scout_test_config_')

    monkeypatch.setenv('SCOUT_CONFIG_DIR', temp_config_dir)
    monkeypatch.delenv('SCOUT_PATTERNS_FILE', raising=False)
    monkeypatch.delenv('SCOUT_MAX_WORKERS', raising=False)
    get_store().reset()

    yield temp_config_dir

    get_store().reset()
    shutil.rmtree(temp_config_dir, ignore_errors=True)


@pytest.fixture
def config_dir(isolate_config_directory):
    """Path of the isolated config directory for this test."""
    return isolate_config_directory


SAMPLE_LOG = (
    '[2024-03-01T10:00:00.000Z] ENDPOINT: POST /api/login STATUS: 200 RESPONSE_SIZE: 120 '
    'RESPONSE_TIME: 0.012 seconds REMOTE_ADDR: 127.0.0.1 USER_AGENT: "curl/8.0" REFERER: "-" '
    'CONTENT_TYPE: "application/json" '
    'REQUEST_BODY: "{\\"email\\":\\"alice@example.com\\",\\"password\\":\\"hunter2\\"}" '
    'RESPONSE_BODY: "{\\"token\\":\\"abc\\"}" ---\n'
    '[2024-03-01T10:05:00.000Z] ENDPOINT: GET /api/health STATUS: 200 RESPONSE_SIZE: 2 '
    'RESPONSE_TIME: 0.001 seconds REMOTE_ADDR: 127.0.0.1 USER_AGENT: "curl/8.0" REFERER: "-" '
    'CONTENT_TYPE: "-" REQUEST_BODY: "" RESPONSE_BODY: "ok" ---\n'
    '[2024-03-02T09:00:00.000Z] ENDPOINT: GET /api/users/42 STATUS: 200 RESPONSE_SIZE: 80 '
    'RESPONSE_TIME: 0.004 seconds REMOTE_ADDR: 10.0.0.5 USER_AGENT: "Mozilla/5.0" REFERER: "-" '
    'CONTENT_TYPE: "-" REQUEST_BODY: "" '
    'RESPONSE_BODY: "{\\"phone\\":\\"5551234567\\"}" ---\n'
)


@pytest.fixture
def sample_log(tmp_path):
    """A proxy access log with two flagged records and one clean one."""
    path = tmp_path / 'proxy-access.log'
    path.write_text(SAMPLE_LOG, encoding='utf-8')
    return path
