"""
Per-run values computed once at startup.
"""

import os
import posixpath
from dataclasses import dataclass
from datetime import datetime

DATE_FORMAT = '%Y_%m_%d'
DAY_FORMAT = '%A'


@dataclass(frozen=True)
class RunContext:
    """
    Immutable description of one backup run.

    Holds the host identity, the calendar date used in artifact names, the
    weekday bucket, and every local and remote path derived from them.
    """

    hostname: str
    machine_id: str
    date: str
    day: str
    dumps_dir: str
    remote_dir: str

    @classmethod
    def create(cls, config, machine_id: str, now: datetime = None) -> 'RunContext':
        """
        Build the context for a run starting at ``now``.

        Args:
            config: Config instance
            machine_id: Persisted host identity
            now: Run start time (defaults to current local time)

        Returns:
            RunContext instance
        """
        if now is None:
            now = datetime.now()

        return cls(
            hostname=config.hostname,
            machine_id=machine_id,
            date=now.strftime(DATE_FORMAT),
            day=now.strftime(DAY_FORMAT),
            dumps_dir=config.dumps_dir,
            remote_dir=config.remote_dir,
        )

    @property
    def host_dir(self) -> str:
        """Directory name that namespaces this host: {hostname}-{machine_id}."""
        return f"{self.hostname}-{self.machine_id}"

    @property
    def local_host_dir(self) -> str:
        return os.path.join(self.dumps_dir, self.host_dir)

    @property
    def local_day_dir(self) -> str:
        return os.path.join(self.local_host_dir, self.day)

    @property
    def remote_host_dir(self) -> str:
        return posixpath.join(self.remote_dir, self.host_dir)

    @property
    def remote_day_dir(self) -> str:
        return posixpath.join(self.remote_host_dir, self.day)
