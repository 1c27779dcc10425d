"""
renderer.py

Responsibility: Deterministically render a copied seed project in place.

Rules:
- Walk project files in sorted order to ensure deterministic output.
- For UTF-8 text files, if Jinja2 markers are present, render with the
  generation context and write the result back.
- Non-text/binary files and text files without markers are left untouched.

This module intentionally does NOT know about GitHub, git, or CLI parsing.
It only ever writes inside the project directory it is given, which is the
isolated workspace copy, never the seed.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from jinja2 import Environment, StrictUndefined, TemplateError

from provisioner.logging import get_logger
from provisioner.models import GenerationParameters

logger = get_logger("renderer")

_MARKERS = ("{{", "{%", "{#")


class RenderError(RuntimeError):
    pass


@dataclass(frozen=True)
class RenderResult:
    rendered_files: int
    untouched_files: int


def _is_binary_file(path: Path) -> bool:
    """
    Best-effort: treat a file as binary if it cannot be decoded as UTF-8.
    """
    try:
        path.read_text(encoding="utf-8")
        return False
    except UnicodeDecodeError:
        return True


def _iter_project_files(project_dir: Path) -> list[Path]:
    """
    Return all regular files under project_dir, in deterministic lexicographic
    order (relative path ordering). Symlinks are not followed.
    """
    files: list[Path] = []
    for root, _dirs, filenames in os.walk(project_dir):
        root_path = Path(root)
        for name in filenames:
            path = root_path / name
            if path.is_symlink():
                continue
            files.append(path)
    files.sort(key=lambda p: str(p.relative_to(project_dir)).replace(os.sep, "/"))
    return files


def build_context(params: GenerationParameters) -> dict[str, Any]:
    # Deterministic keys; templates should reference these.
    return {
        "repo_name": params.repo_name,
        "description": params.description,
        "github_owner": params.owner,
        "private": params.private,
        "variables": params.variables,
        **params.variables,  # convenience access: {{ some_var }}
    }


def render_project_dir(*, project_dir: str | Path, context: dict[str, Any]) -> RenderResult:
    """
    Render every templated text file under project_dir in place.

    Permissions of rendered files are preserved.
    """
    root = Path(project_dir).resolve()
    if not root.is_dir():
        raise RenderError(f"Project directory not found: {root}")

    env = Environment(
        autoescape=False,
        undefined=StrictUndefined,
        keep_trailing_newline=True,
    )

    rendered = 0
    untouched = 0

    for path in _iter_project_files(root):
        rel = path.relative_to(root)
        if _is_binary_file(path):
            untouched += 1
            continue

        text = path.read_text(encoding="utf-8")
        if not any(marker in text for marker in _MARKERS):
            untouched += 1
            continue

        try:
            out = env.from_string(text).render(**context)
        except TemplateError as e:
            raise RenderError(f"Failed rendering template file: {rel}: {e}") from e
        mode = path.stat().st_mode
        # For rendered output, normalize newlines for stable cross-platform output.
        path.write_text(out, encoding="utf-8", newline="\n")
        os.chmod(path, mode)
        rendered += 1

    logger.debug("Rendered %d file(s), left %d untouched in %s", rendered, untouched, root)
    return RenderResult(rendered_files=rendered, untouched_files=untouched)


class JinjaTransformer:
    """ContentTransformer that renders Jinja2 markers with the run's parameters."""

    def transform(self, project_dir: Path, params: GenerationParameters) -> Path:
        render_project_dir(project_dir=project_dir, context=build_context(params))
        return project_dir
