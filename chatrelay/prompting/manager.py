# Copyright (c) Meta Platforms, Inc. and affiliates.
# Modifications copyright (c) 2025 Logan Martel.
# Adapted from https://github.com/meta-pytorch/KernelAgent (Apache-2.0).

"""Jinja2 templates for the prompts the relay sends on the user's behalf.

Only the build directive is templated today. Deployments can shadow any
bundled template by passing ``extra_dirs``; the first directory holding
a template name wins.
"""

from __future__ import annotations

from pathlib import Path
from typing import List, Optional, Sequence, Tuple

from jinja2 import (
    ChoiceLoader,
    Environment,
    FileSystemLoader,
    Template,
    TemplateNotFound,
)

BUNDLED_TEMPLATES = Path(__file__).parent / "templates"
ARTIFACT_INSTRUCTION_TEMPLATE = "artifact_instruction.j2"
BUILD_TASK_TEMPLATE = "build_task.j2"


def _existing_dirs(
    base_dir: Path, extra_dirs: Optional[Sequence[Path]]
) -> Tuple[Path, ...]:
    if not base_dir.exists():
        raise FileNotFoundError(f"Templates directory not found: {base_dir}")
    ordered: List[Path] = []
    for candidate in map(Path, extra_dirs or ()):
        if not candidate.exists():
            raise FileNotFoundError(
                f"Prompt override directory not found: {candidate}"
            )
        ordered.append(candidate)
    ordered.append(base_dir)
    return tuple(ordered)


class PromptManager:
    """Renders the build directive and wraps user tasks with it."""

    def __init__(
        self,
        templates_dir: Optional[Path] = None,
        *,
        extra_dirs: Optional[Sequence[Path]] = None,
    ) -> None:
        base_dir = Path(templates_dir) if templates_dir else BUNDLED_TEMPLATES
        self._base_dir = base_dir
        self._search_paths = _existing_dirs(base_dir, extra_dirs)
        self._env = Environment(
            loader=ChoiceLoader(
                [FileSystemLoader(str(path)) for path in self._search_paths]
            ),
            trim_blocks=True,
            lstrip_blocks=True,
        )

    @property
    def templates_dir(self) -> Path:
        return self._base_dir

    @property
    def search_paths(self) -> Tuple[Path, ...]:
        return self._search_paths

    def list_templates(self) -> List[str]:
        return sorted(set(self._env.list_templates()))

    def render(self, template_name: str, **context) -> str:
        """Render ``template_name`` with surrounding whitespace removed."""
        return self._template(template_name).render(**context).strip()

    def artifact_instruction(self) -> str:
        return self.render(ARTIFACT_INSTRUCTION_TEMPLATE)

    def build_task(self, request_text: str) -> str:
        """The user turn sent for a build: directive, then the task."""
        return self.render(
            BUILD_TASK_TEMPLATE,
            instruction=self.artifact_instruction(),
            task=request_text,
        )

    def _template(self, template_name: str) -> Template:
        try:
            return self._env.get_template(template_name)
        except TemplateNotFound as exc:
            searched = ", ".join(str(path) for path in self._search_paths)
            raise FileNotFoundError(
                f"Prompt template '{template_name}' not found in {searched}"
            ) from exc
