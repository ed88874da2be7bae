"""
Logging configuration for the crawler.

Provides a clean logging system with:
* ANSI colour highlights for ``[CATEGORY]`` tags via ``colorlog``
* GitHub Actions CI support (``::warning::``, ``::error::``, ``::group::``)
"""

import logging
import os
from pathlib import Path

import colorlog

log = logging.getLogger("bulkdata-crawler")

_FILE_LOG_FMT = "%(asctime)s [%(levelname)s] %(threadName)s %(message)s"
_FILE_LOG_DATEFMT = "%Y-%m-%d %H:%M:%S"

# True when running inside GitHub Actions
_CI: bool = os.environ.get("GITHUB_ACTIONS") == "true"

# ── Category colours ───────────────────────────────────────────────
_ANSI_RESET = "\033[0m"
_CATEGORY_STYLES: dict[str, str] = {
    "[DIR]":     "\033[34m",
    "[FILE]":    "\033[37m",
    "[HIT]":     "\033[90m",
    "[MISS]":    "\033[1;32m",
    "[STALE]":   "\033[1;33m",
    "[CORRUPT]": "\033[1;35m",
    "[ERR]":     "\033[1;31m",
}


def _apply_category_styles(msg: str) -> str:
    """Inject ANSI colours for known ``[CATEGORY]`` tags in *msg*."""
    for tag, style in _CATEGORY_STYLES.items():
        if tag in msg:
            msg = msg.replace(tag, f"{style}{tag}{_ANSI_RESET}")
    return msg


# ── GitHub Actions helpers ─────────────────────────────────────────

def ci_group(title: str) -> None:
    """Emit ``::group::`` when running in GitHub Actions (no-op otherwise)."""
    if _CI:
        print(f"::group::{title}", flush=True)


def ci_endgroup() -> None:
    """Emit ``::endgroup::`` when running in GitHub Actions (no-op otherwise)."""
    if _CI:
        print("::endgroup::", flush=True)


# ── Formatters ─────────────────────────────────────────────────────

class _ColorlogCategoryFormatter(colorlog.ColoredFormatter):
    """Extends ``colorlog.ColoredFormatter`` to also highlight inline
    ``[CATEGORY]`` tags."""

    def format(self, record: logging.LogRecord) -> str:
        return _apply_category_styles(super().format(record))


class _CIFormatter(logging.Formatter):
    """Formatter for GitHub Actions CI environments.

    Emits ``::warning::`` / ``::error::`` workflow commands so that
    warnings and errors appear as annotations in the Actions UI.
    """

    _CI_COMMANDS: dict[int, str] = {
        logging.WARNING:  "::warning::",
        logging.ERROR:    "::error::",
        logging.CRITICAL: "::error::",
    }

    def format(self, record: logging.LogRecord) -> str:
        formatted = _apply_category_styles(super().format(record))
        prefix = self._CI_COMMANDS.get(record.levelno, "")
        if prefix:
            return f"{prefix}{formatted}"
        return formatted


def setup_logging(debug: bool = False, log_file: str | None = None) -> None:
    """Configure the package logger with colour support, optional file
    output, and GitHub Actions CI awareness.

    Parameters
    ----------
    debug : bool
        Enable DEBUG-level output (default is INFO).
    log_file : str | None
        If given, also write log messages to this file path.
    """
    level = logging.DEBUG if debug else logging.INFO
    log.setLevel(level)
    log.handlers.clear()

    if _CI:
        handler = logging.StreamHandler()
        handler.setFormatter(_CIFormatter(
            "%(asctime)s [%(levelname)s] %(message)s", datefmt="%H:%M:%S"
        ))
    else:
        handler = colorlog.StreamHandler()
        handler.setFormatter(_ColorlogCategoryFormatter(
            "%(log_color)s%(asctime)s [%(levelname)s]%(reset)s %(message)s",
            datefmt="%H:%M:%S",
            log_colors={
                "DEBUG":    "cyan",
                "INFO":     "green",
                "WARNING":  "yellow",
                "ERROR":    "red",
                "CRITICAL": "bold_red",
            },
        ))
    log.addHandler(handler)

    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        fh = logging.FileHandler(str(log_path), encoding="utf-8")
        fh.setLevel(logging.DEBUG)          # always capture full detail
        fh.setFormatter(logging.Formatter(_FILE_LOG_FMT, datefmt=_FILE_LOG_DATEFMT))
        log.addHandler(fh)
        log.info("Logging to file: %s", log_path.resolve())
