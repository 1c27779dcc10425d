"""
seeds.py

Responsibility: Locate the seed project a run starts from.

- `DirectorySeedProvider` resolves a template name under a templates directory.
- `GitSeedProvider` shallow-clones a seed repository URL into a scratch
  directory; the clone's `.git` is stripped later with the rest of the copy.

The pipeline calls `release(seed)` once the seed has been copied into the
workspace. Template directories are left alone; clones are deleted.
"""

from __future__ import annotations

import shutil
import subprocess
import tempfile
from pathlib import Path

from provisioner.logging import get_logger
from provisioner.models import GenerationParameters

logger = get_logger("seeds")


class SeedError(RuntimeError):
    pass


class DirectorySeedProvider:
    def __init__(self, templates_dir: str | Path) -> None:
        self._templates_dir = Path(templates_dir).resolve()

    def fetch_seed(self, params: GenerationParameters) -> Path:
        seed = self._templates_dir / params.seed
        if not seed.exists() or not seed.is_dir():
            raise SeedError(f"Seed template not found: {seed}")
        return seed

    def release(self, seed: Path) -> None:
        pass


class GitSeedProvider:
    """Clones `params.seed_url`; falls back to `fallback` when no URL is set."""

    def __init__(self, scratch_dir: str | Path | None = None, fallback: DirectorySeedProvider | None = None) -> None:
        self._scratch_dir = Path(scratch_dir) if scratch_dir is not None else None
        self._fallback = fallback
        self._clones: set[Path] = set()

    def fetch_seed(self, params: GenerationParameters) -> Path:
        if not params.seed_url:
            if self._fallback is None:
                raise SeedError("No seed URL given and no fallback seed provider configured")
            return self._fallback.fetch_seed(params)

        if self._scratch_dir is not None:
            self._scratch_dir.mkdir(parents=True, exist_ok=True)
        scratch = Path(tempfile.mkdtemp(prefix="seed-", dir=self._scratch_dir))
        target = scratch / "seed"
        cmd = ["git", "clone", "--depth", "1", params.seed_url, str(target)]
        logger.info("Cloning seed %s", params.seed_url)
        try:
            subprocess.run(cmd, check=True, stdout=subprocess.PIPE, stderr=subprocess.STDOUT, text=True)
        except subprocess.CalledProcessError as e:
            shutil.rmtree(scratch, ignore_errors=True)
            raise SeedError(f"Failed cloning seed {params.seed_url}\n\n{e.stdout}") from e
        except OSError as e:
            shutil.rmtree(scratch, ignore_errors=True)
            raise SeedError(f"Failed running git: {e}") from e
        self._clones.add(target)
        return target

    def release(self, seed: Path) -> None:
        """Delete a clone made by `fetch_seed`; other paths go to the fallback."""
        if seed not in self._clones:
            if self._fallback is not None:
                self._fallback.release(seed)
            return
        self._clones.discard(seed)
        logger.debug("Removing seed clone %s", seed.parent)
        try:
            shutil.rmtree(seed.parent)
        except OSError as e:
            raise SeedError(f"Failed removing seed clone {seed.parent}: {e}") from e
