"""Keyword heuristics for spotting code-generation requests."""

from __future__ import annotations

ARTIFACT_KEYWORDS = (
    "напиши код",
    "создай код",
    "сделай сайт",
    "landing",
    "лендинг",
    "index.html",
    "react",
    "next.js",
    "node.js",
    "python script",
    "создай файл",
    "write code",
    "generate code",
    "create file",
    ".html",
    ".css",
    ".js",
    ".ts",
    ".tsx",
    ".py",
    ".go",
    ".java",
    ".md",
)


def is_artifact_request(text: str) -> bool:
    """Whether ``text`` looks like it asks for project files."""
    normalized = text.lower()
    return any(keyword in normalized for keyword in ARTIFACT_KEYWORDS)
