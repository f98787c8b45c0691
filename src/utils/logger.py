"""Logging setup with Windows-safe Unicode fallback for terminal compatibility.

Detects terminal encoding and provides ASCII alternatives for the handful of
Unicode glyphs the analyzer prints, then routes stdlib logging through Rich.
"""
import sys
import locale
import logging
from typing import Optional


# Unicode to ASCII icon mapping for Windows compatibility
ICON_MAP = {
    '✓': '[OK]',
    '✗': '[FAIL]',
    '⚠': '[WARN]',
    '→': '->',
    '←': '<-',
    '│': '|',
    '─': '-',
    '├': '+',
    '└': '+',
    '…': '...',
    '•': '*',
}

LOGGER_NAME = "janitor"


def detect_terminal_encoding() -> str:
    """Detect the terminal's encoding capability.

    Returns:
        str: Terminal encoding ('utf-8', 'cp1252', 'ascii', etc.)
    """
    if hasattr(sys.stdout, 'encoding') and sys.stdout.encoding:
        return sys.stdout.encoding.lower()

    try:
        return locale.getpreferredencoding().lower()
    except (LookupError, ValueError):
        return 'ascii'


def is_utf8_capable() -> bool:
    """Check if the terminal can handle UTF-8 Unicode characters."""
    return detect_terminal_encoding() in ('utf-8', 'utf8', 'utf_8')


def sanitize_for_terminal(text: str) -> str:
    """Replace Unicode icons with ASCII equivalents if terminal doesn't support UTF-8.

    Args:
        text: Text potentially containing Unicode icons

    Returns:
        str: Sanitized text safe for current terminal
    """
    if is_utf8_capable():
        return text

    sanitized = text
    for unicode_char, ascii_replacement in ICON_MAP.items():
        sanitized = sanitized.replace(unicode_char, ascii_replacement)
    return sanitized


class SanitizingFilter(logging.Filter):
    """Logging filter that strips Unicode glyphs from messages on legacy terminals."""

    def filter(self, record: logging.LogRecord) -> bool:
        if isinstance(record.msg, str):
            record.msg = sanitize_for_terminal(record.msg)
        return True


def setup_logging(level: int = logging.INFO, console=None) -> logging.Logger:
    """Attach a Rich handler to the package logger (idempotent).

    Args:
        level: Logging level for the janitor logger
        console: Optional Rich console; defaults to a SafeConsole on stderr

    Returns:
        The configured package logger
    """
    # Local import: safe_console imports this module
    from rich.logging import RichHandler
    from .safe_console import SafeConsole

    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(level)

    for handler in list(logger.handlers):
        if isinstance(handler, RichHandler):
            logger.removeHandler(handler)

    handler = RichHandler(
        console=console or SafeConsole(stderr=True),
        show_path=False,
        markup=False,
        rich_tracebacks=False,
    )
    handler.addFilter(SanitizingFilter())
    logger.addHandler(handler)
    logger.propagate = False
    return logger


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """Return the package logger or one of its children.

    Args:
        name: Dotted child name (e.g. 'analyzer.registry')
    """
    if not name:
        return logging.getLogger(LOGGER_NAME)
    return logging.getLogger(f"{LOGGER_NAME}.{name}")
