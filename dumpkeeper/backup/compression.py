"""
Compression of database dumps.

Dumps are streamed from the dump tool's stdout straight into a gzip file,
so a dump never has to fit in memory or land uncompressed on disk.
"""

import os
import gzip
import shutil

DUMP_EXTENSION = 'dump.sql.gz'
ARCHIVE_SUFFIX = '.sql.gz'
CHUNK_SIZE = 1024 * 1024


class CompressionError(Exception):
    """Raised when a compressed artifact cannot be written."""
    pass


def generate_dump_filename(database: str, date: str) -> str:
    """
    Build the artifact filename for one database.

    Format: {database}.{date}.dump.sql.gz

    Args:
        database: Database name
        date: Run date (YYYY_MM_DD)

    Returns:
        Filename (without path)
    """
    return f"{database}.{date}.{DUMP_EXTENSION}"


def is_archive(filename: str) -> bool:
    """True if filename looks like a compressed dump (case-insensitive)."""
    return filename.lower().endswith(ARCHIVE_SUFFIX)


def compress_stream(stream, output_path: str, compresslevel: int = 6) -> int:
    """
    Gzip a binary stream into a file.

    Args:
        stream: Readable binary file object (e.g. a process stdout)
        output_path: Destination .gz path
        compresslevel: gzip compression level

    Returns:
        Size of the written file in bytes

    Raises:
        CompressionError: If reading or writing fails. A partial file is
            removed before raising.
    """
    try:
        with gzip.open(output_path, 'wb', compresslevel=compresslevel) as gz:
            shutil.copyfileobj(stream, gz, CHUNK_SIZE)
        return os.path.getsize(output_path)
    except Exception as e:
        remove_partial(output_path)
        raise CompressionError(f"Failed to compress into {output_path}: {e}")


def remove_partial(path: str):
    """Remove a partially written artifact, ignoring a file that is already gone."""
    try:
        os.remove(path)
    except FileNotFoundError:
        pass
