"""Tests for FastAPI endpoints"""

import os

import pytest
from fastapi.testclient import TestClient

from piiscout.web import app


@pytest.fixture
def client(sample_log, monkeypatch):
    """Create test client serving the sample proxy log"""
    monkeypatch.setenv('SCOUT_LOG_FILE', str(sample_log))
    with TestClient(app) as c:
        yield c


@pytest.fixture
def missing_log_client(tmp_path, monkeypatch):
    """Create test client whose proxy log file does not exist"""
    monkeypatch.setenv('SCOUT_LOG_FILE', str(tmp_path / 'missing.log'))
    with TestClient(app) as c:
        yield c


class TestHealthEndpoint:
    """Tests for the health endpoint (at /health)"""

    def test_health_returns_ok(self, client):
        response = client.get('/health')
        assert response.status_code == 200
        data = response.json()
        assert data['status'] == 'ok'

    def test_health_reports_log_file(self, client, sample_log):
        data = client.get('/health').json()
        assert data['log_file'] == str(sample_log.resolve())
        assert data['log_file_exists'] is True

    def test_health_reports_patterns(self, client, config_dir):
        data = client.get('/health').json()
        assert data['patterns_total'] == 10
        assert data['patterns_enabled'] == 10
        assert data['patterns_file'] == os.path.join(config_dir, 'patterns.json')

    def test_health_includes_system_resources(self, client):
        data = client.get('/health').json()
        assert data['system_resources']['cpu_cores'] >= 1
        assert 'SCOUT_LOG_FILE' in data['environment']


class TestMetricsEndpoint:
    def test_metrics(self, client):
        client.post('/v1/detect', json={'text': 'contact: alice@example.com'})
        response = client.get('/metrics')
        assert response.status_code == 200
        assert 'scout_detect_requests_total' in response.text
        assert 'scout_detections_total' in response.text


class TestDetectEndpoint:
    def test_detect_text(self, client):
        response = client.post('/v1/detect', json={'text': 'contact: alice@example.com'})
        assert response.status_code == 200
        data = response.json()
        assert data['text'] == 'contact: alice@example.com'
        assert len(data['detections']) == 1
        detection = data['detections'][0]
        assert detection['type'] == 'Email'
        assert (detection['start'], detection['end']) == (9, 26)
        assert detection['pattern'] == 'email'

    def test_detect_structured_value(self, client):
        response = client.post('/v1/detect', json={'text': {'email': 'alice@example.com'}})
        assert response.status_code == 200
        data = response.json()
        assert data['text'] == '{"email":"alice@example.com"}'
        assert [d['type'] for d in data['detections']] == ['Suspicious Field: email', 'Email']

    def test_detect_empty(self, client):
        response = client.post('/v1/detect', json={'text': ''})
        assert response.status_code == 200
        assert response.json()['detections'] == []

    def test_detect_requires_text(self, client):
        response = client.post('/v1/detect', json={})
        assert response.status_code == 422


class TestAnalyzeEndpoint:
    def test_analyze_content(self, client, sample_log):
        content = sample_log.read_text()
        response = client.post('/v1/analyze', json={'content': content})
        assert response.status_code == 200
        data = response.json()
        assert data['path'] is None
        assert data['total_records'] == 3
        assert data['flagged_records'] == 2
        assert len(data['records']) == 3

    def test_analyze_content_flagged(self, client, sample_log):
        response = client.post('/v1/analyze?filter=flagged', json={'content': sample_log.read_text()})
        assert response.status_code == 200
        records = response.json()['records']
        assert len(records) == 2
        assert all(r['hasPII'] for r in records)

    def test_analyze_invalid_filter(self, client):
        response = client.post('/v1/analyze?filter=bogus', json={'content': ''})
        assert response.status_code == 422

    def test_analyze_empty_content(self, client):
        response = client.post('/v1/analyze', json={'content': ''})
        assert response.status_code == 200
        assert response.json()['total_records'] == 0


class TestLogsEndpoint:
    def test_logs(self, client):
        response = client.get('/v1/logs')
        assert response.status_code == 200
        data = response.json()
        assert data['total_records'] == 3
        first = data['records'][0]
        assert first['logEntry']['endpoint'] == 'POST /api/login'
        assert first['detectionCount'] == 4
        assert {d['field'] for d in first['detections']} == {'requestBody', 'responseBody'}

    def test_logs_structured_body_string(self, client):
        data = client.get('/v1/logs').json()
        entry = data['records'][2]['logEntry']
        assert entry['responseBody'] == {'phone': '5551234567'}
        assert entry['responseBody_string'] == '{\n  "phone": "5551234567"\n}'

    def test_logs_filter_and_limit(self, client):
        response = client.get('/v1/logs', params={'filter': 'unflagged', 'limit': 1})
        assert response.status_code == 200
        records = response.json()['records']
        assert len(records) == 1
        assert records[0]['hasPII'] is False

    def test_logs_missing_file(self, missing_log_client):
        response = missing_log_client.get('/v1/logs')
        assert response.status_code == 404
        assert 'not found' in response.json()['detail']


class TestSummaryEndpoint:
    def test_summary(self, client):
        response = client.get('/v1/summary')
        assert response.status_code == 200
        data = response.json()
        assert data['total_records'] == 3
        assert data['flagged_records'] == 2
        assert len(data['timeline']) == 2

    def test_summary_missing_file(self, missing_log_client):
        assert missing_log_client.get('/v1/summary').status_code == 404


class TestPatternsEndpoints:
    def test_list(self, client):
        response = client.get('/v1/patterns')
        assert response.status_code == 200
        data = response.json()
        assert len(data) == 10
        assert data['email']['enabled'] is True

    def test_replace_disables_pattern(self, client, config_dir):
        response = client.put('/v1/patterns', json={'patterns': {'email': {'enabled': False}}})
        assert response.status_code == 200
        assert response.json()['email']['enabled'] is False
        assert os.path.exists(os.path.join(config_dir, 'patterns.json'))

        detections = client.post('/v1/detect', json={'text': 'contact: alice@example.com'}).json()['detections']
        assert detections == []

    def test_replace_adds_user_pattern(self, client):
        patterns = {'employee_id': {'name': 'Employee ID', 'regex': r'EMP-\d{6}', 'color': '#123456'}}
        response = client.put('/v1/patterns', json={'patterns': patterns})
        assert response.status_code == 200
        assert len(response.json()) == 11

        detections = client.post('/v1/detect', json={'text': 'badge EMP-123456'}).json()['detections']
        assert [(d['type'], d['color']) for d in detections] == [('Employee ID', '#123456')]

    def test_replace_builtin_regex_ignored(self, client):
        response = client.put('/v1/patterns', json={'patterns': {'email': {'regex': 'x'}}})
        assert response.status_code == 200
        assert response.json()['email']['regex'] != 'x'

    def test_replace_invalid_keeps_previous(self, client):
        response = client.put('/v1/patterns', json={'patterns': {'bad': {'name': 'Bad', 'regex': '('}}})
        assert response.status_code == 400
        assert 'bad' in response.json()['detail']
        assert 'bad' not in client.get('/v1/patterns').json()

    def test_reset(self, client):
        client.put('/v1/patterns', json={'patterns': {'email': {'enabled': False}}})
        response = client.post('/v1/patterns/reset')
        assert response.status_code == 200
        assert response.json()['email']['enabled'] is True

    def test_unwritable_patterns_file_keeps_previous(self, sample_log, tmp_path, monkeypatch):
        blocker = tmp_path / 'afile'
        blocker.write_text('')
        monkeypatch.setenv('SCOUT_PATTERNS_FILE', str(blocker / 'patterns.json'))
        monkeypatch.setenv('SCOUT_LOG_FILE', str(sample_log))
        with TestClient(app) as c:
            response = c.put('/v1/patterns', json={'patterns': {'email': {'enabled': False}}})
            assert response.status_code == 500
            assert 'Could not save patterns' in response.json()['detail']
            assert c.get('/v1/patterns').json()['email']['enabled'] is True

            reset = c.post('/v1/patterns/reset')
            assert reset.status_code == 500

    def test_persisted_catalog_loaded_on_startup(self, sample_log, config_dir, monkeypatch):
        with open(os.path.join(config_dir, 'patterns.json'), 'w') as f:
            f.write('{"ssn": {"enabled": false}}')
        monkeypatch.setenv('SCOUT_LOG_FILE', str(sample_log))
        with TestClient(app) as c:
            assert c.get('/v1/patterns').json()['ssn']['enabled'] is False
