"""Artifact extraction and materialization."""

from .extractor import (
    ArtifactExtractor,
    ExtractionResult,
    NormalizationReport,
    extract_artifact_bundle,
)
from .materializer import ArtifactMaterializer, sanitize_relative_path

__all__ = [
    "ArtifactExtractor",
    "ArtifactMaterializer",
    "ExtractionResult",
    "NormalizationReport",
    "extract_artifact_bundle",
    "sanitize_relative_path",
]
