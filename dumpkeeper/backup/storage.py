"""
Storage handlers for dump sets.

Supports:
- LocalDumpStorage: the local home tree (dumps, logs, conf) and day directories
- RemoteStorage: the storage host, reached by SSH alias over SFTP
"""

import os
import math
import stat
import shlex
import socket
import logging
import posixpath
from pathlib import Path
from typing import List

import paramiko
from paramiko import SSHClient, AutoAddPolicy

from dumpkeeper.errors import BackupError
from .compression import generate_dump_filename

logger = logging.getLogger(__name__)


class TransferError(BackupError):
    """Raised when the storage host rejects a directory or a transfer."""

    def __init__(self, output: str):
        text = f"Remote side rejected transfer, message: `{output}`"
        super().__init__(f"ERROR: {text}", notice=text)
        self.output = output


class LocalDumpStorage:
    """
    Local filesystem layout under the agent home.

    {home}/conf, {home}/logs, {home}/dumps/{hostname}-{id}/{day}/...
    """

    SUBDIRECTORIES = ('dumps', 'logs', 'conf')

    def __init__(self, home: str):
        self.home = Path(home)

    def prepare(self):
        """Create the home subdirectories (idempotent)."""
        for name in self.SUBDIRECTORIES:
            (self.home / name).mkdir(parents=True, exist_ok=True)

    def ensure_day_directory(self, day_dir: str) -> str:
        """Create today's target directory and return it."""
        Path(day_dir).mkdir(parents=True, exist_ok=True)
        return day_dir

    @staticmethod
    def artifact_path(day_dir: str, database: str, date: str) -> str:
        return os.path.join(day_dir, generate_dump_filename(database, date))


def directory_size(path: str) -> int:
    """
    On-disk size of a directory tree in bytes, counted in allocated blocks.

    Args:
        path: Directory to measure

    Returns:
        Total size in bytes
    """
    total = 0
    for root, dirs, files in os.walk(path):
        for name in [root] + [os.path.join(root, f) for f in files]:
            st = os.lstat(name)
            total += getattr(st, 'st_blocks', 0) * 512 or st.st_size
    return total


def format_size(num_bytes: int) -> str:
    """
    Render a byte count the way ``du -h`` does (4.0K, 12M, ...).

    Values are rounded up; one decimal is kept below 10.
    """
    if num_bytes < 1024:
        return str(num_bytes)

    value = float(num_bytes)
    for unit in ('K', 'M', 'G', 'T', 'P'):
        value /= 1024
        if value < 1024 or unit == 'P':
            break

    if value < 10:
        value = math.ceil(value * 10) / 10
        if value < 10:
            return f"{value:.1f}{unit}"
    return f"{math.ceil(value)}{unit}"


class RemoteStorage:
    """
    Handler for the remote storage host.

    The host is addressed by an SSH alias resolved through the user's SSH
    config (HostName, User, Port, IdentityFile). Authentication relies on
    keys or a running agent.
    """

    def __init__(self, host_alias: str, ssh_config_path: str = '~/.ssh/config', timeout: int = 30):
        """
        Initialize remote storage handler.

        Args:
            host_alias: SSH alias of the storage host (e.g. 'storage')
            ssh_config_path: SSH client config used to resolve the alias
            timeout: Connection and command timeout in seconds
        """
        self.host_alias = host_alias
        self.ssh_config_path = ssh_config_path
        self.timeout = timeout

        self.ssh_client = None
        self.sftp_client = None

    def _connect_kwargs(self) -> dict:
        """Resolve the alias into paramiko connect() arguments."""
        ssh_config = paramiko.SSHConfig()
        config_path = Path(self.ssh_config_path).expanduser()
        if config_path.exists():
            with open(config_path, 'r') as f:
                ssh_config.parse(f)

        host_config = ssh_config.lookup(self.host_alias)

        connect_kwargs = {
            'hostname': host_config.get('hostname', self.host_alias),
            'timeout': self.timeout
        }
        if 'user' in host_config:
            connect_kwargs['username'] = host_config['user']
        if 'port' in host_config:
            connect_kwargs['port'] = int(host_config['port'])
        if 'identityfile' in host_config:
            connect_kwargs['key_filename'] = [
                os.path.expanduser(p) for p in host_config['identityfile']
            ]
        return connect_kwargs

    def _connect(self):
        """
        Establish SSH and SFTP sessions if not connected yet.

        Raises:
            TransferError: If connection fails
        """
        if self.ssh_client is not None:
            return

        try:
            self.ssh_client = SSHClient()
            self.ssh_client.load_system_host_keys()
            self.ssh_client.set_missing_host_key_policy(AutoAddPolicy())
            self.ssh_client.connect(**self._connect_kwargs())
            self.sftp_client = self.ssh_client.open_sftp()

        except paramiko.AuthenticationException as e:
            self.cleanup()
            raise TransferError(f"SSH authentication failed for {self.host_alias}: {e}")
        except (paramiko.SSHException, socket.error) as e:
            self.cleanup()
            raise TransferError(f"SSH connection to {self.host_alias} failed: {e}")

    def ensure_directory(self, remote_path: str):
        """
        Run ``mkdir -p`` for a path on the storage host.

        Raises:
            TransferError: If the command exits non-zero or does not finish
                within the timeout
        """
        self._connect()

        command = f"mkdir -p {shlex.quote(remote_path)}"
        try:
            stdin, stdout, stderr = self.ssh_client.exec_command(command, timeout=self.timeout)
            # recv_exit_status() itself never times out
            if not stdout.channel.status_event.wait(self.timeout):
                stdout.channel.close()
                raise TransferError(f"{command} did not finish within {self.timeout}s")
            exit_status = stdout.channel.recv_exit_status()
        except (paramiko.SSHException, socket.error) as e:
            raise TransferError(f"{command}: {e}")

        if exit_status != 0:
            error_output = stderr.read().decode('utf-8', errors='replace').strip()
            raise TransferError(error_output or f"{command} exited with status {exit_status}")

        logger.debug(f"Remote directory ready: {self.host_alias}:{remote_path}")

    def _mkdir(self, remote_path: str):
        try:
            self.sftp_client.stat(remote_path)
        except FileNotFoundError:
            self.sftp_client.mkdir(remote_path)

    def _put_file(self, local_path: str, remote_path: str):
        """Upload one file, keeping its timestamps and permission bits."""
        st = os.stat(local_path)
        self.sftp_client.put(local_path, remote_path)
        self.sftp_client.utime(remote_path, (st.st_atime, st.st_mtime))
        self.sftp_client.chmod(remote_path, stat.S_IMODE(st.st_mode))

    def upload_directory(self, local_dir: str, remote_parent: str) -> List[str]:
        """
        Recursively copy a local directory under a remote parent directory.

        ``/local/.../Monday`` ends up as ``{remote_parent}/Monday``.

        Args:
            local_dir: Directory to copy
            remote_parent: Existing remote directory to copy into

        Returns:
            Remote paths of uploaded files

        Raises:
            TransferError: If any part of the transfer fails
        """
        self._connect()

        local_dir = os.path.normpath(local_dir)
        remote_root = posixpath.join(remote_parent, os.path.basename(local_dir))
        uploaded = []

        try:
            for root, dirs, files in os.walk(local_dir):
                relative = os.path.relpath(root, local_dir)
                if relative == os.curdir:
                    remote_dir = remote_root
                else:
                    remote_dir = posixpath.join(remote_root, *relative.split(os.sep))
                self._mkdir(remote_dir)

                for name in sorted(files):
                    remote_path = posixpath.join(remote_dir, name)
                    self._put_file(os.path.join(root, name), remote_path)
                    uploaded.append(remote_path)

        except (paramiko.SSHException, OSError) as e:
            raise TransferError(f"{local_dir} -> {self.host_alias}:{remote_root}: {e}")

        logger.debug(f"Uploaded {len(uploaded)} files to {self.host_alias}:{remote_root}")
        return uploaded

    def cleanup(self):
        """Close SSH/SFTP connections."""
        if self.sftp_client:
            try:
                self.sftp_client.close()
            except Exception as e:
                logger.debug(f"Failed to close SFTP session: {e}")
            self.sftp_client = None

        if self.ssh_client:
            try:
                self.ssh_client.close()
            except Exception as e:
                logger.debug(f"Failed to close SSH session: {e}")
            self.ssh_client = None
