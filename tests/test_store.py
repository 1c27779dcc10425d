from __future__ import annotations

from pathlib import Path

import pytest
import yaml

from provisioner.models import RepoReference
from provisioner.store import MemoryStore, RecordingError, YamlFileStore

REF = RepoReference(owner="acme", repo="widget-svc")
OTHER = RepoReference(owner="acme", repo="gadget-svc", api_base="https://ghe.example.com/api/v3")


def test_memory_store_deduplicates() -> None:
    store = MemoryStore()
    store.put(REF)
    store.put(REF)
    store.put(OTHER)

    assert store.list() == [REF, OTHER]


def test_yaml_store_persists_references(tmp_path: Path) -> None:
    path = tmp_path / "state" / "created.yaml"
    store = YamlFileStore(path)

    store.put(REF)
    store.put(OTHER)
    store.put(REF)

    assert YamlFileStore(path).list() == [REF, OTHER]
    data = yaml.safe_load(path.read_text(encoding="utf-8"))
    assert data["repositories"][0] == {"owner": "acme", "repo": "widget-svc", "api_base": "https://api.github.com"}


def test_yaml_store_empty_when_missing(tmp_path: Path) -> None:
    assert YamlFileStore(tmp_path / "missing.yaml").list() == []


def test_yaml_store_rejects_malformed_file(tmp_path: Path) -> None:
    path = tmp_path / "created.yaml"
    path.write_text("- just\n- a list\n", encoding="utf-8")

    with pytest.raises(RecordingError, match="Malformed"):
        YamlFileStore(path).put(REF)


def test_yaml_store_write_failure(tmp_path: Path) -> None:
    # A regular file where the parent directory should be makes every write fail.
    blocker = tmp_path / "blocker"
    blocker.write_text("", encoding="utf-8")

    with pytest.raises(RecordingError, match="acme/widget-svc"):
        YamlFileStore(blocker / "created.yaml").put(REF)
