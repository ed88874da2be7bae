"""Utility helpers for URL resolution and logging."""

from bulkdata_crawler.utils.url import envelope_path, resolve_link, url_extension, url_filename
from bulkdata_crawler.utils.log import setup_logging, log

__all__ = [
    "envelope_path",
    "resolve_link",
    "url_extension",
    "url_filename",
    "setup_logging",
    "log",
]
