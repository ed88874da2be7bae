"""
Cache envelope codec.

An envelope is a tar archive holding exactly two members, in order:

1. ``Last-Modified.txt`` – the marker bytes reported by the server
2. ``<original filename>`` – the downloaded body

The marker is opaque; it is only ever compared byte-for-byte with the
value observed on the next fetch.
"""

import enum
import io
import os
import tarfile
import tempfile
import time
from pathlib import Path
from typing import BinaryIO

from bulkdata_crawler.config import ENVELOPE_MODE, MARKER_RECORD_NAME, STREAM_CHUNK
from bulkdata_crawler.errors import EnvelopeCorruptError, StorageError
from bulkdata_crawler.utils.log import log


class CacheState(enum.Enum):
    HIT = "hit"
    MISS = "miss"
    STALE = "stale"
    CORRUPT = "corrupt"


def read_marker(path: Path) -> bytes:
    """Return the marker stored in the envelope at *path*.

    Raises ``FileNotFoundError`` when there is no envelope and
    :class:`EnvelopeCorruptError` when the file is not a well-formed
    envelope.
    """
    try:
        tar = tarfile.open(path, mode="r:")
    except FileNotFoundError:
        raise
    except (tarfile.TarError, EOFError) as exc:
        raise EnvelopeCorruptError(path, f"not a tar archive ({exc})") from exc
    except OSError as exc:
        raise StorageError(f"{path}: {exc}") from exc

    with tar:
        try:
            first = tar.next()
        except (tarfile.TarError, EOFError) as exc:
            raise EnvelopeCorruptError(path, f"unreadable first record ({exc})") from exc
        if first is None:
            raise EnvelopeCorruptError(path, "archive is empty")
        if first.name != MARKER_RECORD_NAME:
            raise EnvelopeCorruptError(
                path, f"first record is {first.name!r}, expected {MARKER_RECORD_NAME!r}"
            )
        fh = tar.extractfile(first)
        if fh is None:
            raise EnvelopeCorruptError(path, "marker record is not a regular file")
        try:
            return fh.read()
        except (tarfile.TarError, EOFError) as exc:
            raise EnvelopeCorruptError(path, f"truncated marker record ({exc})") from exc


def classify(path: Path, marker: bytes) -> CacheState:
    """Compare the envelope at *path* against a freshly observed *marker*."""
    try:
        stored = read_marker(path)
    except FileNotFoundError:
        return CacheState.MISS
    except EnvelopeCorruptError as exc:
        log.debug("  Corrupt envelope %s: %s", path, exc.reason)
        return CacheState.CORRUPT
    if stored == marker:
        return CacheState.HIT
    return CacheState.STALE


def _tarinfo(name: str, size: int) -> tarfile.TarInfo:
    info = tarfile.TarInfo(name)
    info.size = size
    info.mode = ENVELOPE_MODE
    info.mtime = int(time.time())
    return info


def write_envelope(
    path: Path,
    marker: bytes,
    filename: str,
    body: BinaryIO,
    size: int,
) -> None:
    """Write a new envelope to *path*, replacing any previous one.

    The archive is assembled in a temporary file beside *path* and
    renamed into place, so readers only ever see a complete envelope or
    the previous one.  *body* must yield exactly *size* bytes.
    """
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(
            dir=path.parent, prefix=f".{path.name}.", suffix=".part"
        )
    except OSError as exc:
        raise StorageError(f"{path}: {exc}") from exc

    tmp_path = Path(tmp_name)
    try:
        with os.fdopen(fd, "wb") as fh:
            with tarfile.open(fileobj=fh, mode="w", bufsize=STREAM_CHUNK) as tar:
                marker_info = _tarinfo(MARKER_RECORD_NAME, len(marker))
                tar.addfile(marker_info, io.BytesIO(marker))
                tar.addfile(_tarinfo(filename, size), body)
            fh.flush()
            os.fsync(fh.fileno())
        os.chmod(tmp_path, 0o644)
        os.replace(tmp_path, path)
    except BaseException as exc:
        tmp_path.unlink(missing_ok=True)
        if isinstance(exc, OSError):
            raise StorageError(f"{path}: {exc}") from exc
        raise
    log.debug("Archived → %s (%d bytes)", path, size)
