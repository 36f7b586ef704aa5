"""
Password extraction from the mysqldump defaults file.
"""

import re

from dumpkeeper.errors import BackupError

PASSWORD_LINE = re.compile(r'^\s*password\s*=\s*(.*?)\s*$')


class CredentialsError(BackupError):
    """Raised when the database password cannot be extracted."""
    pass


def _unquote(value: str) -> str:
    if len(value) >= 2 and value[0] == value[-1] and value[0] in ('"', "'"):
        return value[1:-1]
    return value


def extract_password(cnf_path: str) -> str:
    """
    Extract the database password from a ``key=value`` defaults file.

    The first ``password=`` line wins. The value is only returned, never
    written anywhere.

    Args:
        cnf_path: Path to the defaults file (e.g. conf/dump.cnf)

    Returns:
        The password value (may be empty)

    Raises:
        CredentialsError: If the file cannot be read or has no password line
    """
    try:
        with open(cnf_path, 'r') as f:
            lines = f.readlines()
    except FileNotFoundError:
        raise CredentialsError(_error_message(cnf_path, 'file not found'))
    except (OSError, UnicodeDecodeError) as e:
        raise CredentialsError(_error_message(cnf_path, e))

    for line in lines:
        match = PASSWORD_LINE.match(line)
        if match:
            return _unquote(match.group(1))

    raise CredentialsError(_error_message(cnf_path, 'no "password=" line found'))


def _error_message(cnf_path, reason) -> str:
    return f"Got an error while extracting password from {cnf_path}, message: {reason}"
