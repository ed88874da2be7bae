"""
Exception hierarchy for the bulk-data crawler.

Cache misses and stale envelopes are normal outcomes and are not
represented here.
"""


class CrawlerError(Exception):
    """Base class for every error raised by the crawler."""


class ConfigError(CrawlerError):
    """Startup configuration is malformed; raised before any work begins."""


class FetchError(CrawlerError):
    """A listing page or file could not be retrieved."""

    def __init__(self, url: str, reason: str) -> None:
        super().__init__(f"{url}: {reason}")
        self.url = url
        self.reason = reason


class StorageError(CrawlerError):
    """Creating directories or writing an envelope failed."""


class EnvelopeCorruptError(CrawlerError):
    """The file at an envelope path is not an envelope this tool wrote.

    Replacing it is destructive, so it is reported instead of being
    treated as a cache miss.
    """

    def __init__(self, path, reason: str) -> None:
        super().__init__(f"{path}: {reason}")
        self.path = path
        self.reason = reason


class ContentLengthMismatchError(CrawlerError):
    """The streamed body size differs from the advertised Content-Length."""

    def __init__(self, url: str, declared: int, actual: int) -> None:
        super().__init__(
            f"{url}: Content-Length declared {declared} bytes, received {actual}"
        )
        self.url = url
        self.declared = declared
        self.actual = actual
