"""
End-to-end tests for the two-phase driver.
"""

import tarfile
import tempfile
import unittest
from pathlib import Path

from bulkdata_crawler.config import MARKER_RECORD_NAME, CrawlConfig
from bulkdata_crawler.core.crawler import FileDescriptor, Frontier
from bulkdata_crawler.core.driver import Driver
from bulkdata_crawler.errors import EnvelopeCorruptError, FetchError

from fakes import FakeSession

HOST = "https://example.gov/"
ROOT = HOST + "bulkdata"
SUBDIR = HOST + "a/"
DOC = HOST + "a/doc.txt"


class DriverTestCase(unittest.TestCase):

    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.out = Path(self._tmp.name)

    def tearDown(self):
        self._tmp.cleanup()

    def make_driver(self, session, concurrency=4, **overrides):
        settings = dict(
            root_url=ROOT,
            base_url=HOST,
            output_dir=self.out,
            concurrency=concurrency,
            show_progress=False,
        )
        settings.update(overrides)
        return Driver(CrawlConfig(**settings).validate(), session=session)

    @staticmethod
    def members(path):
        with tarfile.open(path) as tar:
            return [(m.name, tar.extractfile(m).read()) for m in tar.getmembers()]


class TestEndToEnd(DriverTestCase):

    def _session(self, marker, body):
        session = FakeSession()
        session.add_listing(ROOT, ["/a/"])
        session.add_listing(SUBDIR, ["/a/doc.txt"])
        session.add_file(DOC, body, marker=marker)
        return session

    def test_miss_hit_stale_across_runs(self):
        envelope = self.out / "a" / "doc.tar"

        report = self.make_driver(self._session("M1", b"hello")).run()
        self.assertTrue(report.ok)
        self.assertEqual(report.download.total, 1)
        self.assertEqual(report.download.outcomes["miss"], 1)
        self.assertEqual(self.members(envelope), [
            (MARKER_RECORD_NAME, b"M1"),
            ("doc.txt", b"hello"),
        ])

        before = envelope.read_bytes()
        report = self.make_driver(self._session("M1", b"hello")).run()
        self.assertTrue(report.ok)
        self.assertEqual(report.download.outcomes["hit"], 1)
        self.assertEqual(envelope.read_bytes(), before)

        report = self.make_driver(self._session("M2", b"world")).run()
        self.assertTrue(report.ok)
        self.assertEqual(report.download.outcomes["stale"], 1)
        self.assertEqual(self.members(envelope), [
            (MARKER_RECORD_NAME, b"M2"),
            ("doc.txt", b"world"),
        ])

    def test_crawl_completes_before_downloads_start(self):
        session = self._session("M1", b"hello")
        self.make_driver(session).run()
        self.assertEqual(session.calls, [ROOT, SUBDIR, DOC])


class TestFailureHandling(DriverTestCase):

    def test_failed_file_does_not_block_siblings(self):
        session = FakeSession()
        session.add_listing(ROOT, ["/a/"])
        session.add_listing(SUBDIR, ["/a/good.xml", "/a/gone.xml", "/a/bad.xml"])
        session.add_file(HOST + "a/good.xml", b"<ok/>", marker="M1")
        session.routes[HOST + "a/gone.xml"] = 404
        (self.out / "a").mkdir()
        (self.out / "a" / "bad.tar").write_bytes(b"not an envelope")
        session.add_file(HOST + "a/bad.xml", b"<bad/>", marker="M1")

        report = self.make_driver(session).run()

        self.assertFalse(report.ok)
        self.assertTrue(report.crawl.ok)
        self.assertEqual(report.download.total, 3)
        self.assertEqual(report.download.outcomes["miss"], 1)
        self.assertEqual(report.download.outcomes["corrupt"], 1)
        errors = {f.url: type(f.error) for f in report.failures}
        self.assertEqual(errors, {
            HOST + "a/gone.xml": FetchError,
            HOST + "a/bad.xml": EnvelopeCorruptError,
        })
        self.assertTrue((self.out / "a" / "good.tar").is_file())
        self.assertEqual((self.out / "a" / "bad.tar").read_bytes(), b"not an envelope")

    def test_crawl_failure_still_downloads_what_was_found(self):
        session = FakeSession()
        session.add_listing(ROOT, ["/a/", "/b/"])
        session.add_listing(SUBDIR, ["/a/doc.txt"])
        session.add_file(DOC, b"hello", marker="M1")
        session.routes[HOST + "b/"] = 503

        report = self.make_driver(session).run()

        self.assertFalse(report.ok)
        self.assertEqual([f.url for f in report.crawl.failures], [HOST + "b/"])
        self.assertTrue(report.download.ok)
        self.assertTrue((self.out / "a" / "doc.tar").is_file())


class TestConcurrencyBound(DriverTestCase):

    def test_downloads_never_exceed_gate_capacity(self):
        session = FakeSession(delay=0.02)
        names = [f"/a/f{i}.xml" for i in range(12)]
        session.add_listing(ROOT, ["/a/"])
        session.add_listing(SUBDIR, names)
        for name in names:
            session.add_file(HOST + name.lstrip("/"), b"x" * 10, marker="M")

        driver = self.make_driver(session, concurrency=3, workers=12)
        report = driver.run()

        self.assertTrue(report.ok)
        self.assertEqual(report.download.outcomes["miss"], 12)
        self.assertLessEqual(session.peak_in_flight, 3)
        self.assertLessEqual(driver.gate.peak, 3)

    def test_download_of_empty_frontier(self):
        report = self.make_driver(FakeSession()).download(Frontier())
        self.assertEqual(report.total, 0)
        self.assertTrue(report.ok)

    def test_download_accepts_prebuilt_frontier(self):
        session = FakeSession()
        session.add_file(DOC, b"hello", marker="M1")
        frontier = Frontier()
        frontier.add(FileDescriptor(DOC, ".txt"))
        report = self.make_driver(session).download(frontier)
        self.assertEqual(report.outcomes["miss"], 1)
        self.assertEqual(session.calls, [DOC])


if __name__ == "__main__":
    unittest.main()
