from __future__ import annotations

from pathlib import Path
from typing import Any

import pytest

from provisioner.collaborators import CollaboratorInviter, InvitationAccepter
from provisioner.models import (
    CollaboratorConfig,
    CollaboratorCredentials,
    GenerationParameters,
    OwnerCredentials,
    RepoReference,
)
from provisioner.pipeline import ProvisioningPipeline
from provisioner.renderer import JinjaTransformer
from provisioner.seeds import DirectorySeedProvider
from provisioner.store import MemoryStore

OWNER_TOKEN = "ghp_ownerTokenValue0123456789"
COLLABORATOR_TOKEN = "ghp_collabTokenValue0123456789"

_NO_INVITATION = object()


class FakeGitHub:
    """Stands in for GitHubClient in the collaborator handshake; records every call."""

    def __init__(
        self,
        events: list[tuple[Any, ...]],
        *,
        invite_payload: Any = _NO_INVITATION,
        invite_error: Exception | None = None,
        accept_error: Exception | None = None,
    ) -> None:
        self.events = events
        self.invite_payload = {"id": 42} if invite_payload is _NO_INVITATION else invite_payload
        self.invite_error = invite_error
        self.accept_error = accept_error

    def __call__(self, credentials: Any, api_base: str, timeout: float) -> "_FakeClient":
        return _FakeClient(self, credentials, api_base)


class _FakeClient:
    def __init__(self, hub: FakeGitHub, credentials: Any, api_base: str) -> None:
        self.hub = hub
        self.credentials = credentials
        self.api_base = api_base

    def add_collaborator(self, owner: str, name: str, login: str, permission: str = "push") -> Any:
        self.hub.events.append(("invite", f"{owner}/{name}", login, permission, self.credentials))
        if self.hub.invite_error is not None:
            raise self.hub.invite_error
        return self.hub.invite_payload

    def accept_invitation(self, invitation_id: int) -> None:
        self.hub.events.append(("accept", invitation_id, self.credentials))
        if self.hub.accept_error is not None:
            raise self.hub.accept_error


class FakePublisher:
    """Records what would be pushed instead of talking to GitHub."""

    def __init__(self, events: list[tuple[Any, ...]], *, error: Exception | None = None, reference: RepoReference | None = None) -> None:
        self.events = events
        self.error = error
        self.reference = reference
        self.published_files: list[str] = []
        self.published_dir: Path | None = None

    def publish(self, project_dir: Path, credentials: OwnerCredentials, params: GenerationParameters) -> RepoReference:
        self.events.append(("publish", f"{params.owner}/{params.repo_name}", credentials))
        if self.error is not None:
            raise self.error
        self.published_dir = Path(project_dir)
        self.published_files = sorted(
            str(p.relative_to(project_dir)).replace("\\", "/") for p in Path(project_dir).rglob("*")
        )
        return self.reference or RepoReference(owner=params.owner, repo=params.repo_name)


class RecordingStore(MemoryStore):
    def __init__(self, events: list[tuple[Any, ...]], *, error: Exception | None = None) -> None:
        super().__init__()
        self.events = events
        self.error = error

    def put(self, ref: RepoReference) -> None:
        self.events.append(("record", ref.full_name))
        if self.error is not None:
            raise self.error
        super().put(ref)


@pytest.fixture
def owner_credentials() -> OwnerCredentials:
    return OwnerCredentials(OWNER_TOKEN)


@pytest.fixture
def collaborator() -> CollaboratorConfig:
    return CollaboratorConfig(login="atomist-bot", credentials=CollaboratorCredentials(COLLABORATOR_TOKEN))


@pytest.fixture
def params() -> GenerationParameters:
    return GenerationParameters(
        owner="acme",
        repo_name="widget-svc",
        description="Widget service",
        seed="python-lib",
        variables={"author": "Jane"},
    )


@pytest.fixture
def templates_dir(tmp_path: Path) -> Path:
    seed = tmp_path / "templates" / "python-lib"
    (seed / ".git" / "objects").mkdir(parents=True)
    (seed / ".git" / "HEAD").write_text("ref: refs/heads/main\n", encoding="utf-8")
    (seed / "README.md").write_text("# {{ repo_name }}\n\nBy {{ author }}.\n", encoding="utf-8")
    (seed / "static").mkdir()
    (seed / "static" / "logo.bin").write_bytes(b"\xff\xfe{{ not rendered }}")
    return tmp_path / "templates"


@pytest.fixture
def events() -> list[tuple[Any, ...]]:
    return []


@pytest.fixture
def make_pipeline(tmp_path: Path, templates_dir: Path, events: list[tuple[Any, ...]]):
    def _make(
        *,
        publish_error: Exception | None = None,
        reference: RepoReference | None = None,
        record_error: Exception | None = None,
        workspace_root: Path | None = None,
        seed_provider: Any = None,
        **github_options: Any,
    ) -> tuple[ProvisioningPipeline, FakePublisher, RecordingStore]:
        publisher = FakePublisher(events, error=publish_error, reference=reference)
        recorder = RecordingStore(events, error=record_error)
        github = FakeGitHub(events, **github_options)
        pipeline = ProvisioningPipeline(
            seed_provider=seed_provider or DirectorySeedProvider(templates_dir),
            transformer=JinjaTransformer(),
            publisher=publisher,
            recorder=recorder,
            workspace_root=workspace_root or tmp_path / "generated",
            inviter=CollaboratorInviter(client_factory=github),
            accepter=InvitationAccepter(client_factory=github),
        )
        return pipeline, publisher, recorder

    return _make


@pytest.fixture
def fake_github(events: list[tuple[Any, ...]]):
    def _make(**options: Any) -> FakeGitHub:
        return FakeGitHub(events, **options)

    return _make
