"""
Single-instance guard for backup runs.
"""

import os
import fcntl
from pathlib import Path


class RunLockError(Exception):
    """Raised when another run already holds the lock."""
    pass


class RunLock:
    """
    Exclusive, non-blocking flock on a file in the agent home.

    Held for the whole run so two runs never write the same dumps and logs.
    """

    def __init__(self, path: str):
        self.path = Path(path)
        self.lock_file = None

    def acquire(self):
        """
        Take the lock.

        Raises:
            RunLockError: If another process holds it
        """
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.lock_file = open(self.path, 'a+')
        try:
            fcntl.flock(self.lock_file.fileno(), fcntl.LOCK_EX | fcntl.LOCK_NB)
        except BlockingIOError:
            self.lock_file.close()
            self.lock_file = None
            raise RunLockError(f"ERROR: another backup run is already in progress (lock file: {self.path})")

        self.lock_file.seek(0)
        self.lock_file.truncate()
        self.lock_file.write(str(os.getpid()))
        self.lock_file.flush()

    def release(self):
        if self.lock_file is not None:
            fcntl.flock(self.lock_file.fileno(), fcntl.LOCK_UN)
            self.lock_file.close()
            self.lock_file = None

    def __enter__(self):
        self.acquire()
        return self

    def __exit__(self, exc_type, exc, tb):
        self.release()
