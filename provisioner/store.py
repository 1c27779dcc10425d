"""
store.py

Responsibility: Remember which repositories the provisioner created.

Two implementations of the recorder used by the pipeline:
- `MemoryStore`: process-local list, for embedding and tests.
- `YamlFileStore`: a YAML document `{"repositories": [...]}` on disk.

Both raise `RecordingError` on failure; the pipeline logs it and carries on,
since the repository exists regardless of whether it was recorded.
"""

from __future__ import annotations

import threading
from pathlib import Path

import yaml

from provisioner.models import RepoReference


class RecordingError(RuntimeError):
    pass


class MemoryStore:
    def __init__(self) -> None:
        self._refs: list[RepoReference] = []
        self._lock = threading.Lock()

    def put(self, ref: RepoReference) -> None:
        with self._lock:
            if ref not in self._refs:
                self._refs.append(ref)

    def list(self) -> list[RepoReference]:
        with self._lock:
            return list(self._refs)


class YamlFileStore:
    def __init__(self, path: str | Path) -> None:
        self._path = Path(path)
        self._lock = threading.Lock()

    @property
    def path(self) -> Path:
        return self._path

    def _load(self) -> list[dict[str, str]]:
        if not self._path.exists():
            return []
        try:
            data = yaml.safe_load(self._path.read_text(encoding="utf-8")) or {}
        except (OSError, yaml.YAMLError) as e:
            raise RecordingError(f"Unable to read creation records from {self._path}: {e}") from e
        if not isinstance(data, dict) or not isinstance(data.get("repositories", []), list):
            raise RecordingError(f"Malformed creation records in {self._path}")
        return list(data.get("repositories") or [])

    def put(self, ref: RepoReference) -> None:
        with self._lock:
            entries = self._load()
            if ref.to_dict() in entries:
                return
            entries.append(ref.to_dict())
            tmp = self._path.with_name(self._path.name + ".tmp")
            try:
                self._path.parent.mkdir(parents=True, exist_ok=True)
                tmp.write_text(yaml.safe_dump({"repositories": entries}, sort_keys=True), encoding="utf-8")
                tmp.replace(self._path)
            except OSError as e:
                raise RecordingError(f"Unable to write creation record for {ref.full_name} to {self._path}: {e}") from e

    def list(self) -> list[RepoReference]:
        with self._lock:
            try:
                return [RepoReference.from_dict(entry) for entry in self._load()]
            except (KeyError, TypeError, AttributeError) as e:
                raise RecordingError(f"Malformed creation records in {self._path}: {e}") from e
