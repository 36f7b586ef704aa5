"""
Shared pytest fixtures for dumpkeeper tests.

This module provides fixtures for:
- Configuration rooted in a temporary home directory
- Logging wired to that home
- A mysqldump defaults file
- Mock fixtures for external services (SSH, mysql client)
"""

import io
import os
import subprocess
from unittest.mock import MagicMock, patch

import pytest

from dumpkeeper import configure_logging, close_logging
from dumpkeeper.config import Config


@pytest.fixture
def home(tmp_path):
    """Agent home directory (not created yet)."""
    return tmp_path / 'mysqldump'


@pytest.fixture
def config(home, tmp_path):
    """
    Complete configuration for a host named db01.

    Retention window: 60 minutes, log lines kept: 5.
    """
    return Config(
        mail_rec='ops@example.com',
        mail_sender='backup@db01.example.com',
        time_delta='60',
        home=str(home),
        remote_host='storage',
        remote_dir='/var/storage/mysqldump',
        preserve_lines=5,
        hostname='db01',
        ssh_config_path=str(tmp_path / 'ssh_config'),
    )


@pytest.fixture
def agent_logging(config):
    """Logging configured for the test home; handlers closed afterwards."""
    logger = configure_logging(config)
    yield logger
    close_logging()


@pytest.fixture
def cnf_file(config):
    """
    mysqldump defaults file with a password line.

    Password: s3cret
    """
    cnf_path = config.cnf_path
    os.makedirs(os.path.dirname(cnf_path), exist_ok=True)
    with open(cnf_path, 'w') as f:
        f.write('[mysqldump]\nuser=root\npassword=s3cret\n')
    return cnf_path


@pytest.fixture
def mock_ssh_client():
    """
    Mock paramiko SSHClient for remote storage testing.

    exec_command finishes in time with exit status 0; the SFTP session is a
    MagicMock.
    """
    with patch('dumpkeeper.backup.storage.SSHClient') as mock_ssh_class:
        mock_ssh = MagicMock()
        mock_sftp = MagicMock()
        mock_ssh_class.return_value = mock_ssh
        mock_ssh.open_sftp.return_value = mock_sftp

        stdout = MagicMock()
        stdout.channel.status_event.wait.return_value = True
        stdout.channel.recv_exit_status.return_value = 0
        stderr = MagicMock()
        stderr.read.return_value = b''
        mock_ssh.exec_command.return_value = (MagicMock(), stdout, stderr)

        yield mock_ssh


def _show_databases_result(*databases, returncode=0, output=None, stderr=''):
    """CompletedProcess as returned by `mysql --batch -e 'show databases;'`."""
    if output is None:
        output = '\n'.join(('Database',) + databases) + '\n'
    return subprocess.CompletedProcess(
        args=['mysql'], returncode=returncode, stdout=output, stderr=stderr
    )


def _fake_dump_process(data=b'-- MySQL dump\n', returncode=0):
    """Popen stand-in whose stdout yields ``data`` and exits with ``returncode``."""
    process = MagicMock()
    process.stdout = io.BytesIO(data)
    process.wait.return_value = returncode
    return process


@pytest.fixture
def show_databases():
    """Factory for mysql client results listing the given databases."""
    return _show_databases_result


@pytest.fixture
def dump_process():
    """Factory for fake mysqldump processes."""
    return _fake_dump_process
