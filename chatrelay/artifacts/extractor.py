"""Recover a validated artifact bundle from free-form model output.

Models do not always honour "JSON only". Candidates are tried in order:
the whole text, each fenced code block, then the span from the first
``{`` to the last ``}``. The first candidate that parses to a JSON object
is normalized into an ``ArtifactBundle``; anything that cannot yield at
least one file is reported as a failure rather than an empty bundle.
"""

from __future__ import annotations

import json
import logging
import posixpath
import re

from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, List, Optional, Tuple

from chatrelay.constants import DEFAULT_BUNDLE_SUMMARY, FALLBACK_FILENAME
from chatrelay.exceptions import ExtractionFailure
from chatrelay.types import ArtifactBundle, GeneratedArtifactFile

_LOGGER = logging.getLogger(__name__)

BINARY_EXTENSIONS = frozenset(
    {
        ".jpg",
        ".jpeg",
        ".png",
        ".webp",
        ".gif",
        ".bmp",
        ".ico",
        ".pdf",
        ".zip",
        ".exe",
    }
)

_FENCE_RE = re.compile(r"```(?:json)?\s*(.*?)```", re.IGNORECASE | re.DOTALL)

SOURCE_DIRECT = "direct"
SOURCE_FENCED = "fenced"
SOURCE_BRACES = "braces"


@dataclass(frozen=True)
class DroppedItem:
    index: int
    reason: str


@dataclass
class NormalizationReport:
    """What the normalizer had to default or discard."""

    source: Optional[str] = None
    defaulted: List[str] = field(default_factory=list)
    dropped_files: List[DroppedItem] = field(default_factory=list)
    dropped_run_instructions: List[DroppedItem] = field(default_factory=list)
    coerced_paths: List[Tuple[str, str]] = field(default_factory=list)
    error: Optional[str] = None

    @property
    def clean(self) -> bool:
        return not (
            self.defaulted
            or self.dropped_files
            or self.dropped_run_instructions
            or self.coerced_paths
            or self.error
        )


@dataclass(frozen=True)
class ExtractionResult:
    bundle: Optional[ArtifactBundle]
    report: NormalizationReport

    @property
    def ok(self) -> bool:
        return self.bundle is not None

    def require_bundle(self) -> ArtifactBundle:
        if self.bundle is None:
            raise ExtractionFailure(
                self.report.error or "No artifact bundle found",
                self.report,
            )
        return self.bundle


def _parse_object(candidate: str) -> Optional[Dict[str, Any]]:
    try:
        value = json.loads(candidate)
    except (TypeError, ValueError, RecursionError):
        return None
    return value if isinstance(value, dict) else None


def _candidates(raw: str) -> Iterator[Tuple[str, str]]:
    yield SOURCE_DIRECT, raw
    for match in _FENCE_RE.finditer(raw):
        inner = match.group(1).strip()
        if inner:
            yield SOURCE_FENCED, inner
    first = raw.find("{")
    last = raw.rfind("}")
    if first >= 0 and last > first:
        yield SOURCE_BRACES, raw[first : last + 1]


def find_json_object(raw: str) -> Tuple[Optional[str], Optional[Dict]]:
    """Return ``(source, object)`` for the first candidate that parses."""

    for source, candidate in _candidates(raw):
        parsed = _parse_object(candidate)
        if parsed is not None:
            return source, parsed
    return None, None


def _clean_text(value: Any) -> Optional[str]:
    if not isinstance(value, str):
        return None
    value = value.strip()
    return value or None


def coerce_binary_path(path: str) -> Tuple[str, Optional[str]]:
    """Swap binary-like extensions for ``.txt``; return (path, old ext)."""

    stem, ext = posixpath.splitext(path)
    ext = ext.lower()
    if ext not in BINARY_EXTENSIONS:
        return path, None
    stem = stem or posixpath.splitext(FALLBACK_FILENAME)[0]
    return f"{stem}.txt", ext


class ArtifactExtractor:
    """Turns raw model text into an ``ExtractionResult``."""

    def extract(self, raw_text: str) -> ExtractionResult:
        report = NormalizationReport()
        source, root = find_json_object(raw_text or "")
        if root is None:
            report.error = "Model answer contains no parseable JSON object"
            _LOGGER.info("Artifact extraction failed: %s", report.error)
            return ExtractionResult(bundle=None, report=report)
        report.source = source

        files = self._normalize_files(root.get("files"), report)
        if not files:
            report.error = "Model answer contains no valid files"
            _LOGGER.info(
                "Artifact extraction failed: %s (dropped %d)",
                report.error,
                len(report.dropped_files),
            )
            return ExtractionResult(bundle=None, report=report)

        summary = _clean_text(root.get("summary"))
        if summary is None:
            summary = DEFAULT_BUNDLE_SUMMARY
            report.defaulted.append("summary")

        bundle = ArtifactBundle(
            summary=summary,
            files=tuple(files),
            run_instructions=self._normalize_steps(
                root.get("runInstructions"), report
            ),
            notes=_clean_text(root.get("notes")),
        )
        _LOGGER.debug(
            "Extracted %d files from %s candidate", len(files), source
        )
        return ExtractionResult(bundle=bundle, report=report)

    def _normalize_files(
        self, value: Any, report: NormalizationReport
    ) -> List[GeneratedArtifactFile]:
        if not isinstance(value, list):
            report.defaulted.append("files")
            return []
        files: List[GeneratedArtifactFile] = []
        for index, item in enumerate(value):
            if not isinstance(item, dict):
                report.dropped_files.append(
                    DroppedItem(index, "not an object")
                )
                continue
            path = _clean_text(item.get("path"))
            content = item.get("content")
            if path is None:
                report.dropped_files.append(
                    DroppedItem(index, "missing or blank path")
                )
                continue
            if not isinstance(content, str) or not content.strip():
                report.dropped_files.append(
                    DroppedItem(index, "missing or blank content")
                )
                continue

            description = _clean_text(item.get("description"))
            coerced, ext = coerce_binary_path(path)
            if ext is not None:
                report.coerced_paths.append((path, coerced))
                if description is None:
                    description = (
                        f"Converted from binary-like file extension {ext} "
                        "to text output."
                    )
            files.append(
                GeneratedArtifactFile(
                    path=coerced,
                    content=content,
                    language=_clean_text(item.get("language")),
                    description=description,
                )
            )
        return files

    def _normalize_steps(
        self, value: Any, report: NormalizationReport
    ) -> Tuple[str, ...]:
        if value is None:
            return tuple()
        if not isinstance(value, list):
            report.defaulted.append("runInstructions")
            return tuple()
        steps: List[str] = []
        for index, item in enumerate(value):
            step = _clean_text(item)
            if step is None:
                report.dropped_run_instructions.append(
                    DroppedItem(index, "not a non-blank string")
                )
                continue
            steps.append(step)
        return tuple(steps)


def extract_artifact_bundle(raw_text: str) -> Optional[ArtifactBundle]:
    """Convenience wrapper returning the bundle or None."""
    return ArtifactExtractor().extract(raw_text).bundle


__all__ = [
    "ArtifactExtractor",
    "BINARY_EXTENSIONS",
    "DroppedItem",
    "ExtractionResult",
    "NormalizationReport",
    "coerce_binary_path",
    "extract_artifact_bundle",
    "find_json_object",
]
