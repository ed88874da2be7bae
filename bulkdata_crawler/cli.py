"""
Command-line interface for the bulk-data crawler.
"""

import argparse
import logging
import sys
import time
from pathlib import Path

from bulkdata_crawler.config import (
    CONNECT_TIMEOUT, DEFAULT_BASE_URL, DEFAULT_ROOT_URL, READ_TIMEOUT,
    CrawlConfig, auto_concurrency,
)
from bulkdata_crawler.core.driver import Driver
from bulkdata_crawler.errors import ConfigError
from bulkdata_crawler.utils.log import setup_logging, log

EXIT_OK = 0
EXIT_FAILURES = 1
EXIT_CONFIG = 2


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Mirror a bulk-data listing into per-file tar envelopes, "
                    "re-downloading only files whose Last-Modified changed.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=(
            "Examples:\n"
            "  python -m bulkdata_crawler\n"
            "  python -m bulkdata_crawler https://www.gpo.gov/fdsys/bulkdata/BILLS\n"
            "  python -m bulkdata_crawler --output mirror --concurrency 8\n"
        ),
    )
    parser.add_argument(
        "url", nargs="?", default=DEFAULT_ROOT_URL,
        help=f"Root listing URL (default: {DEFAULT_ROOT_URL})",
    )
    parser.add_argument(
        "--base", default=DEFAULT_BASE_URL,
        help=f"Base URL listing links are resolved against (default: {DEFAULT_BASE_URL})",
    )
    parser.add_argument(
        "--output", default=".",
        help="Directory the envelope tree is written under (default: current directory)",
    )
    parser.add_argument(
        "--concurrency", default="auto", metavar="N",
        help="Maximum simultaneous network requests, or 'auto' to detect "
             "from CPU/RAM (default: auto)",
    )
    parser.add_argument(
        "--connect-timeout", type=float, default=CONNECT_TIMEOUT,
        help=f"Connection timeout in seconds (default: {CONNECT_TIMEOUT:g})",
    )
    parser.add_argument(
        "--read-timeout", type=float, default=READ_TIMEOUT,
        help=f"Read timeout in seconds (default: {READ_TIMEOUT:g})",
    )
    parser.add_argument(
        "--no-verify-ssl", dest="verify_ssl", action="store_false", default=True,
        help="Disable TLS certificate verification",
    )
    parser.add_argument(
        "--overwrite-corrupt", action="store_true", default=False,
        help="Replace files at envelope paths that are not valid envelopes "
             "instead of reporting them",
    )
    parser.add_argument(
        "--no-progress", dest="show_progress", action="store_false", default=True,
        help="Do not print the progress line",
    )
    parser.add_argument(
        "--debug", action="store_true",
        help="Enable verbose debug logging",
    )
    parser.add_argument(
        "--log-file",
        help="Write detailed logs to this file (always at DEBUG level)",
    )
    return parser.parse_args(argv)


def build_config(args: argparse.Namespace) -> CrawlConfig:
    """Turn parsed arguments into a validated :class:`CrawlConfig`."""
    raw_conc = str(args.concurrency).strip().lower()
    if raw_conc in ("auto", "0", ""):
        concurrency = auto_concurrency()
        log.info("Auto-detected concurrency: %d", concurrency)
    else:
        try:
            concurrency = int(raw_conc)
        except ValueError:
            raise ConfigError(f"invalid --concurrency value {args.concurrency!r}")

    return CrawlConfig(
        root_url=args.url,
        base_url=args.base,
        output_dir=Path(args.output),
        concurrency=concurrency,
        connect_timeout=args.connect_timeout,
        read_timeout=args.read_timeout,
        verify_ssl=args.verify_ssl,
        overwrite_corrupt=args.overwrite_corrupt,
        show_progress=args.show_progress,
    ).validate()


def main(argv: list[str] | None = None) -> None:
    args = parse_args(argv)

    setup_logging(debug=args.debug, log_file=args.log_file)

    if args.debug:
        logging.getLogger("urllib3").setLevel(logging.DEBUG)

    try:
        config = build_config(args)
    except ConfigError as exc:
        log.error("Invalid configuration: %s", exc)
        sys.exit(EXIT_CONFIG)

    if not config.verify_ssl:
        import urllib3
        urllib3.disable_warnings(urllib3.exceptions.InsecureRequestWarning)
        log.warning("TLS certificate verification is DISABLED (--no-verify-ssl)")

    t0 = time.monotonic()
    report = Driver(config).run()
    elapsed = time.monotonic() - t0
    log.info("Total elapsed time: %.1f s", elapsed)

    sys.exit(EXIT_OK if report.ok else EXIT_FAILURES)


if __name__ == "__main__":
    main()
