"""Write artifact bundles into per-owner sandbox directories."""

from __future__ import annotations

import logging
import posixpath

from itertools import takewhile
from pathlib import Path
from typing import List, Sequence, Set, Tuple

from chatrelay.constants import FALLBACK_FILENAME, RESPONSES_DIR
from chatrelay.exceptions import ArtifactWriteError, InvalidOutputPath
from chatrelay.types import (
    ArtifactBundle,
    WrittenArtifactBundle,
    WrittenArtifactFile,
)

_LOGGER = logging.getLogger(__name__)


def sanitize_relative_path(unsafe_path: str) -> str:
    """Reduce ``unsafe_path`` to a relative path with no ``.``/``..``."""

    text = (unsafe_path or "").replace("\x00", "").replace("\\", "/")
    normalized = posixpath.normpath(text) if text else ""
    segments = [
        segment
        for segment in normalized.lstrip("/").split("/")
        if segment not in ("", ".", "..")
    ]
    if not segments:
        return FALLBACK_FILENAME
    return "/".join(segments)


def flatten_filename(name: str) -> str:
    """Sanitize ``name`` into a single path segment."""
    return sanitize_relative_path(name).replace("/", "_")


def _is_within(path: Path, base_dir: Path) -> bool:
    try:
        path.relative_to(base_dir)
    except ValueError:
        return False
    return True


class ArtifactMaterializer:
    """Owns the filesystem subtree under ``root_dir``.

    Each owner writes only beneath ``root_dir/<owner>``; every target is
    resolved (following symlinks) and checked against that directory.
    """

    def __init__(self, root_dir: Path) -> None:
        self.root_dir = Path(root_dir).resolve()

    def owner_dir(self, owner_id: str) -> Path:
        owner_dir = (self.root_dir / flatten_filename(str(owner_id))).resolve()
        if not _is_within(owner_dir, self.root_dir):
            raise InvalidOutputPath(str(owner_id), self.root_dir)
        return owner_dir

    def _target(self, base_dir: Path, unsafe_path: str) -> Tuple[str, Path]:
        relative = sanitize_relative_path(unsafe_path)
        absolute = (base_dir / relative).resolve()
        if absolute == base_dir or not _is_within(absolute, base_dir):
            _LOGGER.error(
                "Refusing to write %r outside %s", unsafe_path, base_dir
            )
            raise InvalidOutputPath(unsafe_path, base_dir)
        return relative, absolute

    def _check_layout(
        self, base_dir: Path, targets: Sequence[Tuple[str, Path]]
    ) -> None:
        """Reject bundles whose files would collide with each other or
        with directories already on disk."""

        files: Set[Path] = set()
        dirs: Set[Path] = set()
        for relative, absolute in targets:
            parents = list(
                takewhile(lambda parent: parent != base_dir, absolute.parents)
            )
            if absolute in files:
                reason = "listed more than once"
            elif absolute in dirs:
                reason = "also used as a directory"
            elif any(parent in files for parent in parents):
                reason = "parent is also a file in the bundle"
            elif absolute.is_dir():
                reason = "a directory already exists there"
            elif any(
                parent.exists() and not parent.is_dir() for parent in parents
            ):
                reason = "parent already exists as a file"
            else:
                files.add(absolute)
                dirs.update(parents)
                continue
            _LOGGER.error("Refusing bundle file %s: %s", relative, reason)
            raise ArtifactWriteError(relative, reason)

    def write_bundle(
        self, owner_id: str, bundle: ArtifactBundle
    ) -> WrittenArtifactBundle:
        base_dir = self.owner_dir(owner_id)
        base_dir.mkdir(parents=True, exist_ok=True)

        # Every target is resolved and checked before the first write.
        targets = [self._target(base_dir, item.path) for item in bundle.files]
        self._check_layout(base_dir, targets)

        written: List[WrittenArtifactFile] = []
        for (relative, absolute), item in zip(targets, bundle.files):
            try:
                absolute.parent.mkdir(parents=True, exist_ok=True)
                absolute.write_text(item.content, encoding="utf-8")
            except OSError as exc:
                _LOGGER.error("Failed to write %s: %s", absolute, exc)
                raise ArtifactWriteError(relative, str(exc)) from exc
            written.append(
                WrittenArtifactFile(
                    relative_path=relative,
                    absolute_path=absolute,
                    content=item.content,
                )
            )
        _LOGGER.info("Wrote %d artifact files to %s", len(written), base_dir)
        return WrittenArtifactBundle(base_dir=base_dir, files=tuple(written))

    def write_large_text(
        self, owner_id: str, filename: str, content: str
    ) -> Path:
        """Store an oversized plain-text answer and return its path."""

        responses_dir = self.owner_dir(owner_id) / RESPONSES_DIR
        responses_dir.mkdir(parents=True, exist_ok=True)
        responses_dir = responses_dir.resolve()
        _, absolute = self._target(responses_dir, flatten_filename(filename))
        absolute.write_text(content, encoding="utf-8")
        _LOGGER.info("Wrote large response to %s", absolute)
        return absolute


__all__ = [
    "ArtifactMaterializer",
    "flatten_filename",
    "sanitize_relative_path",
]
