# Copyright (c) Meta Platforms, Inc. and affiliates.
# Modifications copyright (c) 2025 Logan Martel.
# Adapted from https://github.com/meta-pytorch/KernelAgent (Apache-2.0).

"""Logging helpers (redaction, rotating logs, console setup)."""

from __future__ import annotations

import logging
import os

from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Iterable, Optional

_REDACT_KEYS = {
    "OPENROUTER_API_KEY",
    "GROQ_API_KEY",
}
_MIN_SECRET_LENGTH = 8
REDACTED = "<REDACTED_KEY>"

CONSOLE_FORMAT = "%(levelname)s %(name)s: %(message)s"
FILE_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def _level(name: str) -> int:
    return getattr(logging, name.upper(), logging.INFO)


def redact(text: str, extra_keys: Optional[Iterable[str]] = None) -> str:
    """Scrub API key variable names and their live values from ``text``.

    Provider error bodies sometimes echo the credential back; values
    shorter than a few characters are left alone to avoid mangling text.
    """

    if not text:
        return ""
    keys = _REDACT_KEYS.union(extra_keys or ())
    for key in keys:
        secret = os.environ.get(key) or ""
        if len(secret) >= _MIN_SECRET_LENGTH:
            text = text.replace(secret, REDACTED)
        text = text.replace(key, REDACTED)
    return text


def setup_file_logger(
    log_file: Path, *, level: str = "INFO", name: str = "chatrelay"
) -> logging.Logger:
    """Attach one rotating handler per file to the ``name`` logger."""

    log_file = Path(log_file)
    log_file.parent.mkdir(parents=True, exist_ok=True)
    logger = logging.getLogger(name)
    logger.setLevel(_level(level))
    target = str(log_file.resolve())
    for handler in logger.handlers:
        if (
            isinstance(handler, RotatingFileHandler)
            and handler.baseFilename == target
        ):
            return logger
    handler = RotatingFileHandler(
        target, maxBytes=2_000_000, backupCount=3, encoding="utf-8"
    )
    handler.setFormatter(logging.Formatter(FILE_FORMAT))
    logger.addHandler(handler)
    return logger


def configure_console_logging(level: str = "INFO") -> None:
    """Install a basic console handler unless one is already present."""

    if not logging.getLogger().handlers:
        logging.basicConfig(level=_level(level), format=CONSOLE_FORMAT)
