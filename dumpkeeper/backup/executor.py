"""
Backup executor - orchestrates one complete backup run.

Workflow:
1. Resolve host identity and compute the run context
2. Extract the database password
3. Preflight (settings, hostname, connectivity)
4. Provision local and remote directories
5. Dump and compress every user database
6. Transfer the day directory to the storage host
7. Prune old dumps and trim logs

The first failing step ends the run; remaining steps never execute.
"""

import logging
from datetime import datetime
from typing import List

from dumpkeeper.context import RunContext
from dumpkeeper.credentials import extract_password
from dumpkeeper.errors import BackupError
from dumpkeeper.identity import resolve_machine_id
from dumpkeeper.lock import RunLock, RunLockError
from dumpkeeper.notifier import Notifier
from dumpkeeper.preflight import run_preflight
from .mysql import MySQLServer
from .retention import RetentionSweeper
from .storage import LocalDumpStorage, RemoteStorage, directory_size, format_size

logger = logging.getLogger(__name__)

SUCCESS_MESSAGE = 'MySQL backup was succesfully done'

EXIT_SUCCESS = 0
EXIT_FAILURE = 1
EXIT_LOCKED = 2


class BackupExecutor:
    """
    Orchestrates the complete backup workflow for this host.
    """

    def __init__(self, config, now: datetime = None):
        """
        Initialize backup executor.

        Args:
            config: Config instance
            now: Run start time (defaults to current time)
        """
        self.config = config
        self.now = now
        self.context = None
        self.server = None
        self.remote = None
        self.artifacts = []
        self.local_storage = LocalDumpStorage(config.home)
        self.notifier = Notifier.from_config(config)

    def execute(self) -> int:
        """
        Execute the backup run.

        Returns:
            Process exit status (0 success, 1 failure, 2 already running)
        """
        lock = RunLock(self.config.lock_path)
        try:
            lock.acquire()
        except RunLockError as e:
            logger.error(str(e))
            return EXIT_LOCKED

        try:
            self._execute_workflow()
        except BackupError as e:
            logger.error(str(e))
            if e.notify:
                self.notifier.send(e.notice)
            return EXIT_FAILURE
        finally:
            if self.remote is not None:
                self.remote.cleanup()
            lock.release()

        return EXIT_SUCCESS

    def _execute_workflow(self):
        """Execute the main backup workflow steps."""
        machine_id = resolve_machine_id(self.config.uuid_path)
        self.context = RunContext.create(self.config, machine_id, now=self.now)

        password = extract_password(self.config.cnf_path)
        self.server = MySQLServer(
            password,
            self.config.cnf_path,
            user=self.config.mysql_user,
            timeout=self.config.command_timeout
        )

        run_preflight(self.config, self.context, self.server)

        self._prepare()
        self.artifacts = self._dump_databases()
        self._copy()
        self._remove_old()

    def _prepare(self):
        """Create local home subdirectories, today's directory, and its remote twin."""
        self.local_storage.prepare()
        self.local_storage.ensure_day_directory(self.context.local_day_dir)

        self.remote = RemoteStorage(
            self.config.remote_host,
            ssh_config_path=self.config.ssh_config_path,
            timeout=self.config.command_timeout or 30
        )
        self.remote.ensure_directory(self.context.remote_day_dir)

    def _dump_databases(self) -> List[str]:
        """
        Dump every user database, one at a time.

        Returns:
            Paths of created artifacts

        Raises:
            DumpError: On the first failing database
        """
        artifacts = []

        for database in self.server.list_databases():
            artifact = self.local_storage.artifact_path(
                self.context.local_day_dir, database, self.context.date
            )
            self.server.dump(database, artifact)
            artifacts.append(artifact)
            logger.info(f"{SUCCESS_MESSAGE}, db: {database}")

        return artifacts

    def _copy(self):
        """
        Copy today's directory to the storage host.

        Raises:
            TransferError: If the transfer fails
        """
        self.remote.upload_directory(self.context.local_day_dir, self.context.remote_host_dir)

        size = format_size(directory_size(self.context.local_day_dir))
        logger.info(
            f'copying "{self.context.day}" (size: {size}) direcory from local: '
            f'{self.context.local_host_dir} to remote: {self.context.remote_host_dir}'
        )

    def _remove_old(self):
        sweeper = RetentionSweeper(
            self.config.dumps_dir,
            self.config.retention_minutes,
            [self.config.main_log, self.config.error_log],
            preserve_lines=self.config.preserve_lines
        )
        sweeper.sweep()


def execute_backup(config) -> int:
    """
    Run one backup with the given configuration.

    Args:
        config: Config instance

    Returns:
        Process exit status
    """
    executor = BackupExecutor(config)
    return executor.execute()
