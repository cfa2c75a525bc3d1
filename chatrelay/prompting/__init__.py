"""Prompt text used to steer models."""

from .detection import ARTIFACT_KEYWORDS, is_artifact_request
from .manager import PromptManager

__all__ = ["ARTIFACT_KEYWORDS", "PromptManager", "is_artifact_request"]
