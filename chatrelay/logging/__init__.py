"""Logging utilities."""

from .utils import configure_console_logging, redact, setup_file_logger

__all__ = [
    "configure_console_logging",
    "redact",
    "setup_file_logger",
]
