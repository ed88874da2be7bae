"""Core crawler logic – listing traversal, envelope caching and the
two-phase driver."""

from bulkdata_crawler.core.crawler import DirectoryCrawler, FileDescriptor, Frontier
from bulkdata_crawler.core.driver import Driver
from bulkdata_crawler.core.envelope import CacheState, classify, read_marker, write_envelope
from bulkdata_crawler.core.gate import Gate
from bulkdata_crawler.core.progress import JoinBarrier, ProgressCounter
from bulkdata_crawler.core.report import PhaseReport, RunReport, TaskFailure
from bulkdata_crawler.core.worker import FetchArchiveWorker

__all__ = [
    "CacheState",
    "DirectoryCrawler",
    "Driver",
    "FetchArchiveWorker",
    "FileDescriptor",
    "Frontier",
    "Gate",
    "JoinBarrier",
    "PhaseReport",
    "ProgressCounter",
    "RunReport",
    "TaskFailure",
    "classify",
    "read_marker",
    "write_envelope",
]
