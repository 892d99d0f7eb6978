"""Tests for the piiscout command line interface."""

import json
import os

from click.testing import CliRunner

from piiscout.__version__ import __version__
from piiscout.catalog import load_catalog
from piiscout.cli.main import cli


class TestAnalyzeCommand:
    """Test piiscout analyze."""

    def setup_method(self):
        self.runner = CliRunner()

    def test_json_output(self, sample_log):
        result = self.runner.invoke(cli, ['analyze', str(sample_log), '--json'])
        assert result.exit_code == 0, result.output
        data = json.loads(result.output)
        assert data['total_records'] == 3
        assert data['flagged_records'] == 2
        assert len(data['records']) == 3
        assert data['records'][0]['hasPII'] is True
        assert data['records'][0]['logEntry']['endpoint'] == 'POST /api/login'

    def test_analyze_is_default_command(self, sample_log):
        result = self.runner.invoke(cli, [str(sample_log), '--filter', 'flagged', '--json'])
        assert result.exit_code == 0, result.output
        data = json.loads(result.output)
        assert len(data['records']) == 2

    def test_text_output(self, sample_log):
        result = self.runner.invoke(cli, ['analyze', str(sample_log), '--no-color'])
        assert result.exit_code == 0, result.output
        assert 'Records: 3 (2 flagged)' in result.output
        assert 'POST /api/login 200 PII' in result.output
        assert 'GET /api/health 200 clean' in result.output
        assert '\033[' not in result.output

    def test_limit(self, sample_log):
        result = self.runner.invoke(cli, ['analyze', str(sample_log), '--limit', '1', '--json'])
        assert result.exit_code == 0, result.output
        assert len(json.loads(result.output)['records']) == 1

    def test_invalid_filter(self, sample_log):
        result = self.runner.invoke(cli, ['analyze', str(sample_log), '--filter', 'bogus'])
        assert result.exit_code != 0

    def test_missing_file(self, tmp_path):
        result = self.runner.invoke(cli, ['analyze', str(tmp_path / 'missing.log')])
        assert result.exit_code != 0

    def test_patterns_file(self, sample_log, tmp_path):
        patterns = tmp_path / 'patterns.json'
        patterns.write_text(json.dumps({'phone': {'enabled': False}}))
        result = self.runner.invoke(
            cli, ['analyze', str(sample_log), '--patterns', str(patterns), '--filter', 'flagged', '--json']
        )
        assert result.exit_code == 0, result.output
        types = [t for r in json.loads(result.output)['records'] for t in r['detectionTypes']]
        assert 'Phone Number' not in types

    def test_invalid_patterns_file(self, sample_log, tmp_path):
        patterns = tmp_path / 'patterns.json'
        patterns.write_text('{"bad": {"name": "Bad", "regex": "("}}')
        result = self.runner.invoke(cli, ['analyze', str(sample_log), '--patterns', str(patterns)])
        assert result.exit_code == 1
        assert 'Error:' in result.output


class TestSummaryCommand:
    def setup_method(self):
        self.runner = CliRunner()

    def test_json_output(self, sample_log):
        result = self.runner.invoke(cli, ['summary', str(sample_log), '--json'])
        assert result.exit_code == 0, result.output
        data = json.loads(result.output)
        assert data['flagged_records'] == 2
        assert data['total_detections'] == 6

    def test_text_output(self, sample_log):
        result = self.runner.invoke(cli, ['summary', str(sample_log), '--no-color'])
        assert result.exit_code == 0, result.output
        assert 'PII Summary' in result.output
        assert 'Flagged: 2' in result.output
        assert '2024-03-02: 1' in result.output


class TestDetectCommand:
    def setup_method(self):
        self.runner = CliRunner()

    def test_json_output(self):
        result = self.runner.invoke(cli, ['detect', 'contact: alice@example.com', '--json'])
        assert result.exit_code == 0, result.output
        data = json.loads(result.output)
        assert data['text'] == 'contact: alice@example.com'
        assert [(d['type'], d['start'], d['end']) for d in data['detections']] == [('Email', 9, 26)]

    def test_text_output(self):
        result = self.runner.invoke(cli, ['detect', 'contact: alice@example.com', '--no-color'])
        assert result.exit_code == 0, result.output
        assert 'Detections: 1' in result.output
        assert '9-26 Email: alice@example.com' in result.output

    def test_reads_stdin(self):
        result = self.runner.invoke(cli, ['detect', '-', '--json'], input='{"password": "hunter2"}')
        assert result.exit_code == 0, result.output
        data = json.loads(result.output)
        assert [d['type'] for d in data['detections']] == ['Suspicious Field: password']


class TestPatternsCommand:
    def setup_method(self):
        self.runner = CliRunner()

    def test_list_json(self):
        result = self.runner.invoke(cli, ['patterns', 'list', '--json'])
        assert result.exit_code == 0, result.output
        data = json.loads(result.output)
        assert 'email' in data
        assert 'high_entropy' in data
        assert data['token']['ignoreCase'] is True

    def test_list_text(self):
        result = self.runner.invoke(cli, ['patterns', 'list', '--no-color'])
        assert result.exit_code == 0, result.output
        assert 'email' in result.output
        assert 'built-in' in result.output

    def test_disable_and_enable(self, config_dir):
        path = os.path.join(config_dir, 'patterns.json')

        result = self.runner.invoke(cli, ['patterns', 'disable', 'phone'])
        assert result.exit_code == 0, result.output
        assert not load_catalog(path)['phone'].enabled

        result = self.runner.invoke(cli, ['detect', 'call 5551234567', '--json'])
        assert json.loads(result.output)['detections'] == []

        result = self.runner.invoke(cli, ['patterns', 'enable', 'phone'])
        assert result.exit_code == 0, result.output
        assert load_catalog(path)['phone'].enabled

    def test_enable_unknown(self):
        result = self.runner.invoke(cli, ['patterns', 'enable', 'nope'])
        assert result.exit_code == 1
        assert 'Unknown pattern' in result.output

    def test_add_and_remove(self, config_dir):
        result = self.runner.invoke(cli, ['patterns', 'add', 'Employee ID', r'EMP-\d{6}'])
        assert result.exit_code == 0, result.output

        result = self.runner.invoke(cli, ['detect', 'badge EMP-123456', '--json'])
        assert [d['type'] for d in json.loads(result.output)['detections']] == ['Employee ID']

        result = self.runner.invoke(cli, ['patterns', 'remove', 'employee_id'])
        assert result.exit_code == 0, result.output
        assert 'employee_id' not in load_catalog(os.path.join(config_dir, 'patterns.json'))

    def test_add_conflicting_with_builtin(self):
        result = self.runner.invoke(cli, ['patterns', 'add', 'Email', 'x'])
        assert result.exit_code == 1
        assert 'Error:' in result.output

    def test_add_invalid_regex(self):
        result = self.runner.invoke(cli, ['patterns', 'add', 'Broken', '('])
        assert result.exit_code == 1
        assert 'Error:' in result.output

    def test_remove_builtin(self):
        result = self.runner.invoke(cli, ['patterns', 'remove', 'email'])
        assert result.exit_code == 1
        assert 'disable it instead' in result.output

    def test_remove_unknown(self):
        result = self.runner.invoke(cli, ['patterns', 'remove', 'nope'])
        assert result.exit_code == 1

    def test_reset(self, config_dir):
        self.runner.invoke(cli, ['patterns', 'disable', 'email'])
        result = self.runner.invoke(cli, ['patterns', 'reset', '--yes'])
        assert result.exit_code == 0, result.output
        assert load_catalog(os.path.join(config_dir, 'patterns.json'))['email'].enabled

    def test_reset_aborted(self):
        result = self.runner.invoke(cli, ['patterns', 'reset'], input='n\n')
        assert result.exit_code == 1

    def test_explicit_file(self, tmp_path):
        path = tmp_path / 'team-patterns.json'
        result = self.runner.invoke(cli, ['patterns', 'disable', 'ssn', '--file', str(path)])
        assert result.exit_code == 0, result.output
        assert not load_catalog(path)['ssn'].enabled


class TestMainGroup:
    def setup_method(self):
        self.runner = CliRunner()

    def test_version(self):
        result = self.runner.invoke(cli, ['--version'])
        assert result.exit_code == 0
        assert __version__ in result.output

    def test_help_without_arguments(self):
        result = self.runner.invoke(cli, [])
        assert result.exit_code == 0
        assert 'Commands:' in result.output
