"""
Fetch/archive worker: downloads one file and refreshes its envelope.
"""

import tempfile

import requests

from bulkdata_crawler.config import MARKER_HEADER, SPOOL_MAX_MEMORY, STREAM_CHUNK, CrawlConfig
from bulkdata_crawler.core.crawler import FileDescriptor
from bulkdata_crawler.core.envelope import CacheState, classify, write_envelope
from bulkdata_crawler.core.gate import Gate
from bulkdata_crawler.errors import (
    ContentLengthMismatchError,
    EnvelopeCorruptError,
    FetchError,
)
from bulkdata_crawler.session import get
from bulkdata_crawler.utils.log import log
from bulkdata_crawler.utils.url import envelope_path, url_filename


def _declared_length(resp: requests.Response) -> int | None:
    raw = resp.headers.get("Content-Length")
    if raw is None:
        return None
    try:
        return int(raw)
    except ValueError:
        return None


class FetchArchiveWorker:
    """Fetches a file in full and writes its envelope on a miss.

    The body is always transferred, even when the envelope turns out to
    be current; the marker only arrives with the response.
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

    def process(self, descriptor: FileDescriptor) -> CacheState:
        """Fetch *descriptor* and bring its envelope up to date.

        Returns the cache state observed before any write.  Raises
        :class:`FetchError`, :class:`StorageError`,
        :class:`ContentLengthMismatchError` or, unless the configuration
        allows overwriting, :class:`EnvelopeCorruptError`.
        """
        url = descriptor.url
        target = envelope_path(url, descriptor.ext, self.config.output_dir)

        with self.gate:
            resp = get(self.session, url, self.config.timeout, stream=True)
            with resp:
                marker = resp.headers.get(MARKER_HEADER, "").encode("latin-1")
                state = classify(target, marker)

                if state is CacheState.HIT:
                    self._drain(resp, url)
                    log.debug("  [HIT] %s", url)
                    return state

                if state is CacheState.CORRUPT and not self.config.overwrite_corrupt:
                    self._drain(resp, url)
                    raise EnvelopeCorruptError(
                        target, "existing file is not an envelope; refusing to overwrite"
                    )

                with tempfile.SpooledTemporaryFile(max_size=SPOOL_MAX_MEMORY) as spool:
                    size = self._spool(resp, url, spool)
                    declared = _declared_length(resp)
                    if declared is not None and declared != size:
                        raise ContentLengthMismatchError(url, declared, size)
                    spool.seek(0)
                    write_envelope(target, marker, url_filename(url), spool, size)

        log.info("[%s] %s → %s", state.name, url, target)
        return state

    @staticmethod
    def _spool(resp: requests.Response, url: str, spool) -> int:
        total = 0
        try:
            for chunk in resp.iter_content(chunk_size=STREAM_CHUNK):
                if chunk:
                    spool.write(chunk)
                    total += len(chunk)
        except requests.RequestException as exc:
            raise FetchError(url, f"body transfer failed: {exc}") from exc
        return total

    @staticmethod
    def _drain(resp: requests.Response, url: str) -> None:
        try:
            for _ in resp.iter_content(chunk_size=STREAM_CHUNK):
                pass
        except requests.RequestException as exc:
            raise FetchError(url, f"body transfer failed: {exc}") from exc
