"""
Persistent per-host identity.

The machine id namespaces dump directories so that a reused or renamed
hostname never collides with an older backup history.
"""

import logging
import secrets
from pathlib import Path

logger = logging.getLogger(__name__)

MACHINE_ID_BYTES = 4  # 8 hex characters


def generate_machine_id() -> str:
    """Return a new short random token."""
    return secrets.token_hex(MACHINE_ID_BYTES)


def resolve_machine_id(uuid_path: str) -> str:
    """
    Read the host identity, creating it on first run.

    Args:
        uuid_path: Path of the file holding the identity

    Returns:
        Machine id token

    Raises:
        OSError: If the identity file cannot be read or written
    """
    path = Path(uuid_path)

    if path.exists():
        return path.read_text().strip()

    machine_id = generate_machine_id()
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(f"{machine_id}\n")
    logger.info(f"Machine Id: {machine_id} created")

    return machine_id
