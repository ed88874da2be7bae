"""
URL resolution and path-mapping helpers.
"""

import posixpath
import urllib.parse
from pathlib import Path

from bulkdata_crawler.config import ENVELOPE_SUFFIX


def resolve_link(raw: str, base: str) -> str | None:
    """
    Resolve the listing link *raw* against the fixed *base* URL.

    Returns ``None`` for empty or malformed links.
    """
    raw = raw.strip()
    if not raw:
        return None
    try:
        resolved = urllib.parse.urljoin(base, raw)
        parsed = urllib.parse.urlparse(resolved)
        # Accessing .port validates the authority section.
        parsed.port
    except ValueError:
        return None
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        return None
    return urllib.parse.urlunparse(
        (parsed.scheme, parsed.netloc, parsed.path, "", parsed.query, "")
    )


def url_extension(url: str) -> str:
    """Return the extension of the last path segment of *url*, including
    the leading dot, or ``""`` when it has none."""
    path = urllib.parse.urlparse(url).path
    return posixpath.splitext(posixpath.basename(path))[1]


def url_filename(url: str) -> str:
    """Return the last path segment of *url*, percent-decoded."""
    path = urllib.parse.urlparse(url).path
    return urllib.parse.unquote(posixpath.basename(path))


def envelope_path(url: str, ext: str, output_dir: Path) -> Path:
    """
    Map a file URL to its envelope path inside *output_dir*, mirroring the
    server's directory structure.  The filename is the URL basename with
    *ext* replaced by the envelope suffix.
    """
    path = urllib.parse.unquote(urllib.parse.urlparse(url).path)
    directory, filename = posixpath.split(path)
    if ext and filename.endswith(ext):
        filename = filename[: -len(ext)]
    parts = [p for p in directory.split("/") if p not in ("", ".", "..")]
    return output_dir.joinpath(*parts, filename + ENVELOPE_SUFFIX)
