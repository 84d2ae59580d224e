"""Tar archive extraction (gzip and xz compressed)."""

import logging
import lzma
import tarfile
import zlib
from pathlib import Path

from .exceptions import DecodeError

logger = logging.getLogger(__name__)

_DECODE_ERRORS = (tarfile.TarError, EOFError, zlib.error, lzma.LZMAError)


def extract_archive(archive_path: Path, destination: Path, remove_archive: bool = True) -> None:
    """
    Extract a compressed tar archive into ``destination``.

    Compression is detected from the stream, so ``.tar.gz`` and ``.tar.xz``
    both work regardless of file name. Members that would escape
    ``destination`` (absolute paths, ``..``, unsafe links) are rejected.

    Existing files in ``destination`` are overwritten but not removed; callers
    that need a clean tree clear it first.

    Args:
        archive_path: Archive to extract
        destination: Directory to extract into (created with parents)
        remove_archive: Delete ``archive_path`` after a successful extraction

    Raises:
        DecodeError: If the archive is corrupt or not a supported tar stream
    """
    destination.mkdir(parents=True, exist_ok=True)
    logger.debug(f"Extracting {archive_path} to {destination}")

    try:
        with tarfile.open(archive_path, mode="r:*") as tar:
            tar.extractall(destination, filter="data")
    except _DECODE_ERRORS as e:
        raise DecodeError(
            f"Failed to extract {archive_path.name}: {e}",
            context={"archive": str(archive_path), "destination": str(destination)},
        ) from e

    if remove_archive:
        archive_path.unlink()
        logger.debug(f"Removed archive {archive_path}")


def single_root(directory: Path) -> Path:
    """Return the only top-level entry of an extracted tree, or the tree itself.

    Release tarballs usually wrap everything in one versioned directory
    (``GE-Proton9-20/``, ``dxvk-2.4/``).
    """
    entries = [entry for entry in directory.iterdir() if not entry.name.startswith(".")]
    if len(entries) == 1 and entries[0].is_dir():
        return entries[0]
    return directory
