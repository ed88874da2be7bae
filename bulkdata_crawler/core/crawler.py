"""
Recursive directory crawler for the bulk-data listing.

Each listing page is fetched under the shared :class:`Gate`; entries
without an extension are sub-listings and are scheduled as new
traversals, everything else is appended to the :class:`Frontier`.
Traversals run on a fixed thread pool and a :class:`JoinBarrier`
accounts for the dynamically spawned work.
"""

import sys
import threading
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass

import requests

from bulkdata_crawler.config import CrawlConfig
from bulkdata_crawler.core.gate import Gate
from bulkdata_crawler.core.progress import JoinBarrier, ProgressCounter
from bulkdata_crawler.core.report import CRAWL, PhaseReport
from bulkdata_crawler.errors import CrawlerError
from bulkdata_crawler.extraction.listing import parse_listing
from bulkdata_crawler.session import get
from bulkdata_crawler.utils.log import log


@dataclass(frozen=True)
class FileDescriptor:
    """A leaf file discovered by the crawl."""

    url: str
    ext: str


class Frontier:
    """Append-only, lock-protected collection of discovered files.

    Adding a URL that is already present is a no-op, so a file linked
    from two listings is downloaded once.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._items: list[FileDescriptor] = []
        self._seen: set[str] = set()

    def add(self, descriptor: FileDescriptor) -> bool:
        with self._lock:
            if descriptor.url in self._seen:
                return False
            self._seen.add(descriptor.url)
            self._items.append(descriptor)
            return True

    def snapshot(self) -> tuple[FileDescriptor, ...]:
        with self._lock:
            return tuple(self._items)

    def __len__(self) -> int:
        with self._lock:
            return len(self._items)

    def __iter__(self):
        return iter(self.snapshot())


class DirectoryCrawler:
    """
    Walks a bulk-data listing tree and returns every file it contains.
    """

    def __init__(
        self,
        config: CrawlConfig,
        session: requests.Session,
        gate: Gate,
    ) -> None:
        self.config = config
        self.session = session
        self.gate = gate

        self.frontier = Frontier()
        self.report = PhaseReport(CRAWL)
        self._barrier = JoinBarrier()
        self._visited: set[str] = set()
        self._visited_lock = threading.Lock()
        self._pool: ThreadPoolExecutor | None = None
        self._progress: ProgressCounter | None = None

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def crawl(self, root_url: str | None = None) -> Frontier:
        """Traverse from *root_url* (default: the configured root) and
        block until every spawned traversal has returned."""
        root_url = root_url or self.config.root_url
        with ThreadPoolExecutor(
            max_workers=self.config.workers, thread_name_prefix="crawl"
        ) as pool, ProgressCounter(
            label="Listings", enabled=self.config.show_progress,
            stream=sys.stderr,
        ) as progress:
            self._pool = pool
            self._progress = progress
            try:
                self._spawn(root_url)
                self._barrier.wait()
            finally:
                self._pool = None
                self._progress = None

        self.report.total = len(self._visited)
        log.info(
            "Crawl complete. listings=%d  files=%d  errors=%d",
            len(self._visited), len(self.frontier), len(self.report.failures),
        )
        return self.frontier

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _spawn(self, url: str) -> None:
        """Schedule a traversal of *url* unless it was already seen."""
        with self._visited_lock:
            if url in self._visited:
                log.debug("  Already visited %s", url)
                return
            self._visited.add(url)
        self._barrier.add()
        self._progress.grow()
        try:
            self._pool.submit(self._traverse, url)
        except RuntimeError:
            self._barrier.done()
            raise

    def _traverse(self, url: str) -> None:
        try:
            self._process_listing(url)
        except CrawlerError as exc:
            failure = self.report.fail(url, exc)
            log.error("[ERR] %s", failure)
        except Exception as exc:
            self.report.fail(url, exc)
            log.exception("[ERR] Unexpected error while crawling %s", url)
        finally:
            self._progress.update()
            self._barrier.done()

    def _process_listing(self, url: str) -> None:
        with self.gate:
            resp = get(self.session, url, self.config.timeout)
            try:
                entries = parse_listing(resp.content, self.config.base_url)
            finally:
                resp.close()

        log.debug("[DIR] %s (%d entries)", url, len(entries))
        dirs = files = 0
        for entry in entries:
            if entry.is_directory:
                self._spawn(entry.url)
                dirs += 1
            elif self.frontier.add(FileDescriptor(entry.url, entry.ext)):
                log.debug("  [FILE] %s", entry.url)
                files += 1
        self.report.record("listing")
        log.debug("  %s → %d sub-listings, %d files", url, dirs, files)
