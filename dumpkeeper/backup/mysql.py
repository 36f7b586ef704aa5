"""
MySQL server access through the stock command line tools.

- ``mysql`` lists databases and doubles as the connectivity check
- ``mysqldump`` produces one dump per database, gzipped on the fly
"""

import os
import logging
import tempfile
import subprocess
from datetime import datetime
from typing import List

from dumpkeeper.errors import BackupError
from .compression import compress_stream, remove_partial, CompressionError

logger = logging.getLogger(__name__)

SYSTEM_SCHEMAS = ('information_schema', 'performance_schema')
LIST_DATABASES_QUERY = 'show databases;'
DUMP_NOTICE = 'got an error in makedump()'


class ConnectivityError(BackupError):
    """Raised when the database server is unreachable or rejects the credentials."""

    def __init__(self, output: str):
        output = output.strip()
        timestamp = datetime.now().strftime('%a %b %d %H:%M:%S %Y')
        super().__init__(
            f"ERROR: {output}",
            notice=f"Got an error while connecting to the database server: {output}, at {timestamp}"
        )
        self.output = output


class DumpError(BackupError):
    """Raised when the dump of a single database fails."""

    def __init__(self, database: str, reason: str):
        super().__init__(
            f"ERROR: mysqldump error, db: {database}, message: {reason}",
            notice=f"{DUMP_NOTICE}, db: {database}"
        )
        self.database = database


class MySQLServer:
    """
    Handle on the local database server.

    The password is kept in memory and handed to the ``mysql`` client through
    MYSQL_PWD, so it never shows up in the process list. ``mysqldump`` reads
    its credentials from the defaults file.
    """

    def __init__(self, password: str, cnf_path: str, user: str = 'root', timeout: int = None):
        """
        Initialize server handle.

        Args:
            password: Password extracted from the defaults file
            cnf_path: Path to the mysqldump defaults file
            user: User for the mysql client
            timeout: Optional timeout in seconds for each client call
        """
        self.password = password
        self.cnf_path = cnf_path
        self.user = user
        self.timeout = timeout

    def _client_env(self) -> dict:
        env = os.environ.copy()
        env['MYSQL_PWD'] = self.password
        return env

    def _show_databases(self) -> subprocess.CompletedProcess:
        """
        Run ``show databases;`` with stdout and stderr captured separately.

        Raises:
            ConnectivityError: If the client cannot be started or times out
        """
        cmd = ['mysql', '--batch', '-u', self.user, '-e', LIST_DATABASES_QUERY]
        try:
            return subprocess.run(
                cmd,
                env=self._client_env(),
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                text=True,
                timeout=self.timeout
            )
        except FileNotFoundError:
            raise ConnectivityError("mysql client not found")
        except subprocess.TimeoutExpired:
            raise ConnectivityError(f"mysql client timed out after {self.timeout}s")

    @staticmethod
    def _client_output(result: subprocess.CompletedProcess) -> str:
        """Combined client output, stderr first, for error reporting."""
        parts = [(result.stderr or '').strip(), (result.stdout or '').strip()]
        return '\n'.join(part for part in parts if part)

    def check_connection(self) -> str:
        """
        Check that the server answers with the configured credentials.

        Returns:
            Client output

        Raises:
            ConnectivityError: If the client exits non-zero
        """
        result = self._show_databases()
        if result.returncode != 0:
            raise ConnectivityError(self._client_output(result))
        return result.stdout

    def list_databases(self) -> List[str]:
        """
        List user databases in server order.

        Only stdout is parsed, so client warnings on stderr never reach the
        list. The header line and the two system schemas are dropped.

        Raises:
            ConnectivityError: If the listing fails
        """
        result = self._show_databases()
        if result.returncode != 0:
            raise ConnectivityError(self._client_output(result))

        lines = [line.strip() for line in result.stdout.splitlines()]
        return [name for name in lines[1:] if name and name not in SYSTEM_SCHEMAS]

    def dump(self, database: str, output_path: str) -> int:
        """
        Dump one database into a gzip artifact.

        Only the dump tool's own exit status decides success; compression
        failures are reported separately.

        Args:
            database: Database name
            output_path: Destination .dump.sql.gz path

        Returns:
            Size of the artifact in bytes

        Raises:
            DumpError: If mysqldump fails or the artifact cannot be written.
                No partial artifact is left behind.
        """
        if database in SYSTEM_SCHEMAS:
            raise DumpError(database, "refusing to dump a system schema")

        cmd = [
            'mysqldump',
            f'--defaults-extra-file={self.cnf_path}',
            '--events',
            database
        ]

        with tempfile.TemporaryFile() as stderr_file:
            try:
                process = subprocess.Popen(cmd, stdout=subprocess.PIPE, stderr=stderr_file)
            except OSError as e:
                raise DumpError(database, f"failed to start mysqldump: {e}")

            try:
                size = compress_stream(process.stdout, output_path)
            except CompressionError as e:
                process.kill()
                process.wait()
                raise DumpError(database, str(e))
            finally:
                process.stdout.close()

            try:
                returncode = process.wait(timeout=self.timeout)
            except subprocess.TimeoutExpired:
                process.kill()
                process.wait()
                remove_partial(output_path)
                raise DumpError(database, f"mysqldump timed out after {self.timeout}s")

            if returncode != 0:
                remove_partial(output_path)
                stderr_file.seek(0)
                stderr = stderr_file.read().decode('utf-8', errors='replace').strip()
                raise DumpError(database, stderr or f"exit code {returncode}")

        logger.debug(f"Dumped {database} to {output_path} ({size} bytes)")
        return size
