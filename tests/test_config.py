"""
Tests for startup configuration, the command-line front end and
logging setup.
"""

import logging
import os
import tempfile
import unittest
from pathlib import Path
from unittest.mock import MagicMock, patch

from bulkdata_crawler.cli import EXIT_CONFIG, EXIT_FAILURES, EXIT_OK, build_config, main, parse_args
from bulkdata_crawler.config import (
    DEFAULT_BASE_URL,
    DEFAULT_ROOT_URL,
    CrawlConfig,
    auto_concurrency,
)
from bulkdata_crawler.errors import ConfigError
from bulkdata_crawler.session import build_session


class TestCrawlConfig(unittest.TestCase):

    def test_defaults(self):
        config = CrawlConfig(concurrency=4)
        self.assertEqual(config.root_url, DEFAULT_ROOT_URL)
        self.assertEqual(config.base_url, DEFAULT_BASE_URL)
        self.assertEqual(config.workers, 8)
        self.assertEqual(config.output_dir, Path.cwd())
        self.assertFalse(config.overwrite_corrupt)

    def test_auto_concurrency_when_zero(self):
        config = CrawlConfig()
        self.assertGreaterEqual(config.concurrency, 2)
        self.assertEqual(config.workers, config.concurrency * 2)

    def test_validate_returns_self(self):
        config = CrawlConfig(concurrency=2)
        self.assertIs(config.validate(), config)

    def test_relative_root_rejected(self):
        with self.assertRaises(ConfigError):
            CrawlConfig(root_url="bulkdata", concurrency=2).validate()

    def test_non_http_base_rejected(self):
        with self.assertRaises(ConfigError):
            CrawlConfig(base_url="ftp://www.gpo.gov/", concurrency=2).validate()

    def test_malformed_url_rejected(self):
        with self.assertRaises(ConfigError):
            CrawlConfig(root_url="http://[::1/bulkdata", concurrency=2).validate()

    def test_negative_concurrency_rejected(self):
        with self.assertRaises(ConfigError):
            CrawlConfig(concurrency=-1).validate()

    def test_non_positive_timeout_rejected(self):
        with self.assertRaises(ConfigError):
            CrawlConfig(concurrency=2, read_timeout=0).validate()

    def test_output_path_must_be_directory(self):
        with tempfile.NamedTemporaryFile() as fh:
            with self.assertRaises(ConfigError):
                CrawlConfig(concurrency=2, output_dir=fh.name).validate()

    def test_timeout_pair(self):
        config = CrawlConfig(concurrency=2, connect_timeout=5, read_timeout=60)
        self.assertEqual(config.timeout, (5, 60))


class TestAutoConcurrency(unittest.TestCase):

    def test_bounds(self):
        result = auto_concurrency()
        self.assertIsInstance(result, int)
        self.assertGreaterEqual(result, 2)
        self.assertLessEqual(result, 32)

    @patch("os.cpu_count", return_value=None)
    def test_handles_unknown_cpu(self, _mock):
        self.assertGreaterEqual(auto_concurrency(), 2)

    @patch("os.cpu_count", return_value=64)
    def test_many_cpus_capped(self, _mock):
        self.assertLessEqual(auto_concurrency(), 32)


class TestBuildSession(unittest.TestCase):

    def test_compression_disabled(self):
        session = build_session()
        self.assertEqual(session.headers["Accept-Encoding"], "identity")

    def test_no_retries_and_pool_size(self):
        config = CrawlConfig(concurrency=100, verify_ssl=False)
        session = build_session(config)
        adapter = session.get_adapter("https://www.gpo.gov/")
        self.assertEqual(adapter.max_retries.total, 0)
        self.assertEqual(adapter._pool_maxsize, 200)
        self.assertFalse(session.verify)


class TestCli(unittest.TestCase):

    def test_defaults(self):
        args = parse_args([])
        self.assertEqual(args.url, DEFAULT_ROOT_URL)
        self.assertEqual(args.base, DEFAULT_BASE_URL)
        self.assertTrue(args.show_progress)

    def test_build_config_explicit_values(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            args = parse_args([
                "https://example.gov/bulkdata", "--base", "https://example.gov/",
                "--output", tmpdir, "--concurrency", "3", "--overwrite-corrupt",
                "--no-progress",
            ])
            config = build_config(args)
        self.assertEqual(config.root_url, "https://example.gov/bulkdata")
        self.assertEqual(config.concurrency, 3)
        self.assertEqual(config.workers, 6)
        self.assertTrue(config.overwrite_corrupt)
        self.assertFalse(config.show_progress)

    def test_build_config_rejects_bad_concurrency(self):
        with self.assertRaises(ConfigError):
            build_config(parse_args(["--concurrency", "many"]))

    def _run_main(self, argv, report_ok=True):
        driver = MagicMock()
        driver.return_value.run.return_value.ok = report_ok
        with patch("bulkdata_crawler.cli.Driver", driver), \
                patch("bulkdata_crawler.cli.setup_logging"):
            with self.assertRaises(SystemExit) as ctx:
                main(argv)
        return ctx.exception.code, driver

    def test_exit_ok(self):
        code, driver = self._run_main(["--concurrency", "2", "--no-progress"])
        self.assertEqual(code, EXIT_OK)
        driver.return_value.run.assert_called_once()

    def test_exit_on_failures(self):
        code, _ = self._run_main(["--concurrency", "2"], report_ok=False)
        self.assertEqual(code, EXIT_FAILURES)

    def test_exit_on_bad_config_before_any_work(self):
        code, driver = self._run_main(["not-a-url", "--concurrency", "2"])
        self.assertEqual(code, EXIT_CONFIG)
        driver.assert_not_called()


class TestLogging(unittest.TestCase):
    """Test the logging configuration."""

    @staticmethod
    def _cleanup_log(logger):
        """Close and remove all handlers to avoid ResourceWarning."""
        for h in list(logger.handlers):
            h.close()
            logger.removeHandler(h)

    def test_setup_logging_creates_handler(self):
        from bulkdata_crawler.utils.log import setup_logging, log as _log
        setup_logging(debug=False)
        self.assertEqual(len(_log.handlers), 1)
        self.assertEqual(_log.level, logging.INFO)
        self._cleanup_log(_log)

    def test_setup_logging_debug_level(self):
        from bulkdata_crawler.utils.log import setup_logging, log as _log
        setup_logging(debug=True)
        self.assertEqual(_log.level, logging.DEBUG)
        self._cleanup_log(_log)

    def test_setup_logging_with_file(self):
        from bulkdata_crawler.utils.log import setup_logging, log as _log
        with tempfile.TemporaryDirectory() as tmpdir:
            log_path = os.path.join(tmpdir, "logs", "crawl.log")
            setup_logging(debug=True, log_file=log_path)
            _log.debug("[MISS] written to file")
            for h in _log.handlers:
                h.flush()
            with open(log_path) as f:
                content = f.read()
            self.assertIn("[MISS] written to file", content)
            self._cleanup_log(_log)

    def test_category_tags_coloured(self):
        from bulkdata_crawler.utils.log import _apply_category_styles
        styled = _apply_category_styles("[STALE] https://example.gov/a.xml")
        self.assertIn("\033[", styled)
        self.assertIn("https://example.gov/a.xml", styled)

    def test_ci_formatter_prefixes_errors(self):
        from bulkdata_crawler.utils.log import _CIFormatter
        record = logging.LogRecord("x", logging.ERROR, __file__, 1, "[ERR] boom", None, None)
        self.assertTrue(_CIFormatter("%(message)s").format(record).startswith("::error::"))


if __name__ == "__main__":
    unittest.main()
