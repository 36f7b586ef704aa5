"""
Unit tests for configuration (dumpkeeper/config.py).
"""

import os

import pytest

from dumpkeeper.config import Config, ConfigurationError


class TestConfigFromEnv:
    """Test building Config from environment variables."""

    def test_from_env_reads_required_settings(self, tmp_path):
        config = Config.from_env({
            'MAIL_REC': 'ops@example.com',
            'MAIL_SENDER': 'backup@example.com',
            'TIME_DELTA': '10080',
            'DUMPKEEPER_HOME': str(tmp_path),
            'HOSTNAME': 'db01',
        })

        assert config.mail_rec == 'ops@example.com'
        assert config.mail_sender == 'backup@example.com'
        assert config.time_delta == '10080'
        assert config.retention_minutes == 10080
        assert config.hostname == 'db01'
        assert config.debug is False

    def test_from_env_defaults(self, tmp_path):
        config = Config.from_env({'DUMPKEEPER_HOME': str(tmp_path)})

        assert config.remote_host == 'storage'
        assert config.remote_dir == '/var/storage/mysqldump'
        assert config.mysql_user == 'root'
        assert config.preserve_lines == 100
        assert config.mail_text_limit == 300
        assert config.command_timeout is None
        assert config.schedule_cron == '0 3 * * *'
        assert config.mail_rec == ''

    def test_default_home(self):
        config = Config.from_env({})

        assert config.home == os.path.expanduser(os.path.join('~', 'scripts', 'mysqldump'))

    def test_debug_flag(self):
        assert Config.from_env({'DEBUG': '1'}).debug is True
        assert Config.from_env({'DEBUG': '0'}).debug is False

    def test_invalid_integer_setting_raises(self):
        with pytest.raises(ConfigurationError, match='PRESERVE_LINES'):
            Config.from_env({'PRESERVE_LINES': 'many'})

    def test_hostname_falls_back_to_system_hostname(self, monkeypatch):
        monkeypatch.setattr('dumpkeeper.config.socket.gethostname', lambda: 'box7')

        assert Config.from_env({}).hostname == 'box7'


class TestConfigPaths:
    """Test the derived filesystem layout."""

    def test_layout_under_home(self, tmp_path):
        config = Config(home=str(tmp_path))

        assert config.cnf_path == os.path.join(str(tmp_path), 'conf', 'dump.cnf')
        assert config.dumps_dir == os.path.join(str(tmp_path), 'dumps')
        assert config.uuid_path == os.path.join(str(tmp_path), 'uuid')
        assert config.main_log == os.path.join(str(tmp_path), 'logs', 'main.log')
        assert config.error_log == os.path.join(str(tmp_path), 'logs', 'error.log')


class TestRetentionMinutes:

    def test_invalid_time_delta(self):
        with pytest.raises(ConfigurationError, match='TIME_DELTA'):
            Config(time_delta='a week').retention_minutes

    def test_negative_time_delta(self):
        with pytest.raises(ConfigurationError, match='negative'):
            Config(time_delta='-5').retention_minutes
