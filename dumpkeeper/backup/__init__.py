"""
Backup module for dumpkeeper.

This module handles the core backup functionality including:
- Database enumeration and dumping (mysql, mysqldump)
- Compression
- Storage (local tree and remote storage host)
- Execution orchestration
- Retention enforcement
"""

from .executor import BackupExecutor, execute_backup
from .mysql import MySQLServer
from .compression import compress_stream
from .storage import LocalDumpStorage, RemoteStorage
from .retention import RetentionSweeper

__all__ = [
    'BackupExecutor',
    'execute_backup',
    'MySQLServer',
    'compress_stream',
    'LocalDumpStorage',
    'RemoteStorage',
    'RetentionSweeper'
]
