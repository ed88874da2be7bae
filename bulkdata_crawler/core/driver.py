"""
Two-phase driver: crawl every listing, then download every file.

The download phase starts only after the crawl's join completes, so the
Frontier it consumes is complete and no longer mutated.
"""

from concurrent.futures import ThreadPoolExecutor

import requests

from bulkdata_crawler.config import CrawlConfig
from bulkdata_crawler.core.crawler import DirectoryCrawler, FileDescriptor, Frontier
from bulkdata_crawler.core.gate import Gate
from bulkdata_crawler.core.progress import JoinBarrier, ProgressCounter
from bulkdata_crawler.core.report import DOWNLOAD, PhaseReport, RunReport
from bulkdata_crawler.core.worker import FetchArchiveWorker
from bulkdata_crawler.errors import CrawlerError, EnvelopeCorruptError
from bulkdata_crawler.session import build_session
from bulkdata_crawler.utils.log import ci_endgroup, ci_group, log


class Driver:
    """Runs the crawl phase to completion, then the download phase."""

    def __init__(
        self,
        config: CrawlConfig,
        session: requests.Session | None = None,
    ) -> None:
        self.config = config
        self.session = session if session is not None else build_session(config)
        self.gate = Gate(config.concurrency)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def run(self) -> RunReport:
        log.info("Output directory : %s", self.config.output_dir.resolve())
        log.info("Root listing     : %s", self.config.root_url)
        log.info("Link base        : %s", self.config.base_url)
        log.info("Concurrency      : %d in flight, %d threads",
                 self.config.concurrency, self.config.workers)

        ci_group("Crawl")
        crawler = DirectoryCrawler(self.config, self.session, self.gate)
        frontier = crawler.crawl()
        ci_endgroup()

        ci_group("Download")
        download = self.download(frontier)
        ci_endgroup()

        report = RunReport(crawler.report, download)
        self._log_summary(report)
        return report

    def download(self, frontier: Frontier) -> PhaseReport:
        """Run one worker per Frontier entry and join on all of them."""
        descriptors = frontier.snapshot()
        report = PhaseReport(DOWNLOAD, total=len(descriptors))
        worker = FetchArchiveWorker(self.config, self.session, self.gate)
        barrier = JoinBarrier()

        log.info("Download started: %d file(s).", len(descriptors))
        with ThreadPoolExecutor(
            max_workers=self.config.workers, thread_name_prefix="download"
        ) as pool, ProgressCounter(
            total=len(descriptors), enabled=self.config.show_progress
        ) as progress:
            barrier.add(len(descriptors))
            for descriptor in descriptors:
                pool.submit(self._download_one, worker, descriptor,
                            report, progress, barrier)
            barrier.wait()

        log.info(
            "Download complete. total=%d  hit=%d  miss=%d  stale=%d  "
            "corrupt=%d  err=%d",
            report.total,
            report.outcomes["hit"],
            report.outcomes["miss"],
            report.outcomes["stale"],
            report.outcomes["corrupt"],
            len(report.failures),
        )
        return report

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _download_one(
        worker: FetchArchiveWorker,
        descriptor: FileDescriptor,
        report: PhaseReport,
        progress: ProgressCounter,
        barrier: JoinBarrier,
    ) -> None:
        try:
            state = worker.process(descriptor)
            report.record(state.value)
        except EnvelopeCorruptError as exc:
            report.record("corrupt")
            failure = report.fail(descriptor.url, exc)
            log.error("[CORRUPT] %s", failure)
        except CrawlerError as exc:
            failure = report.fail(descriptor.url, exc)
            log.error("[ERR] %s", failure)
        except Exception as exc:
            report.fail(descriptor.url, exc)
            log.exception("[ERR] Unexpected error while downloading %s",
                          descriptor.url)
        finally:
            progress.update()
            barrier.done()

    @staticmethod
    def _log_summary(report: RunReport) -> None:
        if report.ok:
            log.info("Run complete: no failures.")
            return
        log.error("Run finished with %d failure(s):", len(report.failures))
        for failure in report.failures:
            log.error("  %s", failure)
