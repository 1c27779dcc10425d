"""
workspace.py

Responsibility: Materialize an isolated working copy of a seed project.

Rules:
- The copy lives in its own directory; it never shares storage with the seed
  (no hard links, and the destination may not sit inside the seed or contain it).
- File contents and permission bits are preserved; symlinks stay symlinks.
- Inherited VCS metadata (`.git`) is removed from the copy afterwards, so the
  published repository starts with fresh history.

Cleaning up the workspace is left to the caller's environment.
"""

from __future__ import annotations

import shutil
from pathlib import Path

from provisioner.logging import get_logger

logger = get_logger("workspace")

VCS_METADATA = ".git"


class WorkspaceError(RuntimeError):
    pass


def _is_within(path: Path, other: Path) -> bool:
    return path == other or other in path.parents


def _ensure_empty_dir(path: Path) -> None:
    if path.exists():
        if not path.is_dir():
            raise WorkspaceError(f"Workspace path exists and is not a directory: {path}")
        if any(path.iterdir()):
            raise WorkspaceError(f"Workspace is not empty: {path}")
        path.rmdir()


def copy_seed(seed_dir: str | Path, parent_dir: str | Path, name: str) -> Path:
    """
    Copy `seed_dir` to `parent_dir/name` and return the new directory.
    """
    seed = Path(seed_dir).resolve()
    if not seed.is_dir():
        raise WorkspaceError(f"Seed directory not found: {seed}")

    if not name or Path(name).name != name or name in (".", ".."):
        raise WorkspaceError(f"Invalid workspace name: {name!r}")

    destination = (Path(parent_dir) / name).resolve()
    if _is_within(destination, seed) or _is_within(seed, destination):
        raise WorkspaceError(f"Workspace {destination} would alias seed {seed}")

    _ensure_empty_dir(destination)

    try:
        destination.parent.mkdir(parents=True, exist_ok=True)
        shutil.copytree(seed, destination, symlinks=True, copy_function=shutil.copy2)
    except OSError as e:
        raise WorkspaceError(f"Failed copying seed {seed} to {destination}: {e}") from e

    logger.info("Copied seed %s to workspace %s", seed, destination)
    return destination


def strip_vcs_metadata(project_dir: str | Path) -> bool:
    """
    Remove the top-level `.git` of `project_dir`.

    Returns True when something was removed. A project without VCS metadata is
    left alone.
    """
    metadata = Path(project_dir) / VCS_METADATA
    if not metadata.exists() and not metadata.is_symlink():
        return False
    try:
        if metadata.is_dir() and not metadata.is_symlink():
            shutil.rmtree(metadata)
        else:
            # Worktrees and submodules leave a `.git` file pointing elsewhere.
            metadata.unlink()
    except OSError as e:
        raise WorkspaceError(f"Failed removing {metadata}: {e}") from e
    logger.debug("Removed inherited VCS metadata %s", metadata)
    return True
