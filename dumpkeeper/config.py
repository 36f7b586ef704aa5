import os
import socket

from dumpkeeper.errors import BackupError


class ConfigurationError(BackupError):
    """Raised when a run parameter is missing or invalid."""
    notify = False


def _int_setting(environ, name, default):
    value = environ.get(name)
    if value is None or value == '':
        return default
    try:
        return int(value)
    except ValueError:
        raise ConfigurationError(f"ERROR {name} must be an integer, got: {value!r}")


class Config:
    """
    Run configuration for the backup agent.

    Built once at startup (usually with ``Config.from_env``) and handed to
    every component explicitly.
    """

    # Settings that must be non-empty before any backup work starts
    REQUIRED_SETTINGS = ('MAIL_REC', 'MAIL_SENDER', 'TIME_DELTA')

    DEFAULT_HOME = os.path.join('~', 'scripts', 'mysqldump')
    DEFAULT_REMOTE_HOST = 'storage'
    DEFAULT_REMOTE_DIR = '/var/storage/mysqldump'
    DEFAULT_SCHEDULE_CRON = '0 3 * * *'

    def __init__(
        self,
        mail_rec: str = '',
        mail_sender: str = '',
        time_delta: str = '',
        debug: bool = False,
        home: str = None,
        remote_host: str = DEFAULT_REMOTE_HOST,
        remote_dir: str = DEFAULT_REMOTE_DIR,
        mysql_user: str = 'root',
        preserve_lines: int = 100,
        mail_text_limit: int = 300,
        command_timeout: int = None,
        schedule_cron: str = DEFAULT_SCHEDULE_CRON,
        schedule_timezone: str = 'UTC',
        hostname: str = None,
        ssh_config_path: str = os.path.join('~', '.ssh', 'config'),
    ):
        self.mail_rec = mail_rec or ''
        self.mail_sender = mail_sender or ''
        self.time_delta = time_delta or ''
        self.debug = debug
        self.home = os.path.abspath(os.path.expanduser(home or self.DEFAULT_HOME))
        self.remote_host = remote_host
        self.remote_dir = remote_dir
        self.mysql_user = mysql_user
        self.preserve_lines = preserve_lines
        self.mail_text_limit = mail_text_limit
        self.command_timeout = command_timeout
        self.schedule_cron = schedule_cron
        self.schedule_timezone = schedule_timezone
        self.hostname = hostname or socket.gethostname()
        self.ssh_config_path = ssh_config_path

    @classmethod
    def from_env(cls, environ=None):
        """
        Build configuration from environment variables.

        Args:
            environ: Mapping to read from (defaults to ``os.environ``)

        Returns:
            Config instance

        Raises:
            ConfigurationError: If a numeric setting cannot be parsed
        """
        if environ is None:
            environ = os.environ

        return cls(
            mail_rec=environ.get('MAIL_REC', ''),
            mail_sender=environ.get('MAIL_SENDER', ''),
            time_delta=environ.get('TIME_DELTA', ''),
            debug=environ.get('DEBUG', '') == '1',
            home=environ.get('DUMPKEEPER_HOME') or None,
            remote_host=environ.get('REMOTE_HOST') or cls.DEFAULT_REMOTE_HOST,
            remote_dir=environ.get('REMOTE_DIR') or cls.DEFAULT_REMOTE_DIR,
            mysql_user=environ.get('MYSQL_USER') or 'root',
            preserve_lines=_int_setting(environ, 'PRESERVE_LINES', 100),
            mail_text_limit=_int_setting(environ, 'MAIL_TEXT_LIMIT', 300),
            command_timeout=_int_setting(environ, 'COMMAND_TIMEOUT', None),
            schedule_cron=environ.get('SCHEDULE_CRON') or cls.DEFAULT_SCHEDULE_CRON,
            schedule_timezone=environ.get('SCHEDULE_TIMEZONE') or 'UTC',
            hostname=environ.get('HOSTNAME') or None,
        )

    def required_settings(self) -> dict:
        """Required settings keyed by their environment variable name."""
        return {
            'MAIL_REC': self.mail_rec,
            'MAIL_SENDER': self.mail_sender,
            'TIME_DELTA': self.time_delta,
        }

    @property
    def retention_minutes(self) -> int:
        """
        Retention window in minutes, parsed from TIME_DELTA.

        Raises:
            ConfigurationError: If TIME_DELTA is not a non-negative integer
        """
        try:
            minutes = int(str(self.time_delta).strip())
        except ValueError:
            raise ConfigurationError(
                f"ERROR TIME_DELTA must be a number of minutes, got: {self.time_delta!r}"
            )
        if minutes < 0:
            raise ConfigurationError(f"ERROR TIME_DELTA can not be negative: {minutes}")
        return minutes

    # Filesystem layout under the home root

    @property
    def dumps_dir(self) -> str:
        return os.path.join(self.home, 'dumps')

    @property
    def logs_dir(self) -> str:
        return os.path.join(self.home, 'logs')

    @property
    def conf_dir(self) -> str:
        return os.path.join(self.home, 'conf')

    @property
    def cnf_path(self) -> str:
        return os.path.join(self.conf_dir, 'dump.cnf')

    @property
    def uuid_path(self) -> str:
        return os.path.join(self.home, 'uuid')

    @property
    def main_log(self) -> str:
        return os.path.join(self.logs_dir, 'main.log')

    @property
    def error_log(self) -> str:
        return os.path.join(self.logs_dir, 'error.log')

    @property
    def lock_path(self) -> str:
        return os.path.join(self.home, 'dumpkeeper.lock')
