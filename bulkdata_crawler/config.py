"""
Configuration constants and validated run configuration for the
bulk-data crawler.
"""

import os
import urllib.parse
from dataclasses import dataclass, field
from pathlib import Path

from bulkdata_crawler.errors import ConfigError

# ---------------------------------------------------------------------------
# Defaults
# ---------------------------------------------------------------------------
DEFAULT_ROOT_URL = "https://www.gpo.gov/fdsys/bulkdata"
DEFAULT_BASE_URL = "https://www.gpo.gov/fdsys/"
DEFAULT_CONCURRENCY = 0        # 0 = auto-detect from CPU/RAM

# Limits for auto-concurrency calculation
_MIN_WORKERS = 2
_MAX_WORKERS = 32
_RAM_PER_WORKER_MB = 64        # estimated RSS per worker thread


def auto_concurrency() -> int:
    """Calculate the Gate capacity from available CPU cores and RAM.

    Heuristic:
      * Start with ``cpu_count * 2`` (I/O-bound workload).
      * Cap by available RAM (``free_mb / _RAM_PER_WORKER_MB``).
      * Clamp between ``_MIN_WORKERS`` and ``_MAX_WORKERS``.
    """
    cpus = os.cpu_count() or 2
    workers = cpus * 2

    try:
        with open("/proc/meminfo") as f:
            for line in f:
                if line.startswith("MemAvailable:"):
                    mem_kb = int(line.split()[1])
                    mem_mb = mem_kb // 1024
                    ram_cap = max(1, mem_mb // _RAM_PER_WORKER_MB)
                    workers = min(workers, ram_cap)
                    break
    except (OSError, ValueError):
        pass

    return max(_MIN_WORKERS, min(workers, _MAX_WORKERS))

# ---------------------------------------------------------------------------
# HTTP client tuning
# ---------------------------------------------------------------------------
CONNECT_TIMEOUT = 30.0
READ_TIMEOUT = 90.0
MAX_IDLE_CONNECTIONS = 100
USER_AGENT = "bulkdata-crawler/1.0 (+https://github.com/)"

# Chunk size for draining and spooling response bodies (512 KiB)
STREAM_CHUNK = 524288

# Bodies larger than this spill from memory to a temporary file while
# being spooled ahead of the archive write (16 MiB).
SPOOL_MAX_MEMORY = 16 * 1024 * 1024

# ---------------------------------------------------------------------------
# Listing format
# ---------------------------------------------------------------------------
LISTING_CELL_SELECTOR = "#bulkdata td"
PARENT_DIRECTORY_LABEL = "Parent Directory"

# ---------------------------------------------------------------------------
# Envelope format
# ---------------------------------------------------------------------------
MARKER_HEADER = "Last-Modified"
MARKER_RECORD_NAME = "Last-Modified.txt"
ENVELOPE_SUFFIX = ".tar"
ENVELOPE_MODE = 0o777


def _check_url(name: str, value: str) -> None:
    try:
        parsed = urllib.parse.urlparse(value)
    except ValueError as exc:
        raise ConfigError(f"{name} is not a valid URL: {value!r}") from exc
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        raise ConfigError(f"{name} must be an absolute http(s) URL: {value!r}")


@dataclass
class CrawlConfig:
    """Startup configuration, validated once and passed into every
    component of a run."""

    root_url: str = DEFAULT_ROOT_URL
    base_url: str = DEFAULT_BASE_URL
    output_dir: Path = field(default_factory=Path.cwd)
    concurrency: int = DEFAULT_CONCURRENCY
    workers: int = 0
    connect_timeout: float = CONNECT_TIMEOUT
    read_timeout: float = READ_TIMEOUT
    verify_ssl: bool = True
    overwrite_corrupt: bool = False
    show_progress: bool = True

    def __post_init__(self) -> None:
        self.output_dir = Path(self.output_dir)
        if self.concurrency == 0:
            self.concurrency = auto_concurrency()
        if self.workers == 0 and self.concurrency > 0:
            self.workers = self.concurrency * 2

    @property
    def timeout(self) -> tuple[float, float]:
        return (self.connect_timeout, self.read_timeout)

    def validate(self) -> "CrawlConfig":
        """Raise :class:`ConfigError` if any setting is unusable.

        Returns ``self`` so construction and validation can be chained.
        """
        _check_url("root URL", self.root_url)
        _check_url("base URL", self.base_url)
        if self.concurrency < 1:
            raise ConfigError(f"concurrency must be at least 1, got {self.concurrency}")
        if self.workers < 1:
            raise ConfigError(f"workers must be at least 1, got {self.workers}")
        if self.connect_timeout <= 0 or self.read_timeout <= 0:
            raise ConfigError("timeouts must be positive")
        if self.output_dir.exists() and not self.output_dir.is_dir():
            raise ConfigError(f"output path is not a directory: {self.output_dir}")
        return self
