"""
models.py

Responsibility: Typed values passed between provisioning stages.

Everything here is immutable. A run's inputs (`GenerationParameters`, the two
credential types, `CollaboratorConfig`) are constructed once and threaded
through the pipeline explicitly; its outputs (`RepoReference`,
`InvitationOutcome`, `ProvisioningResult`) are only ever built by the stage
that owns them.
"""

from __future__ import annotations

import copy
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any, Mapping
from urllib.parse import urlsplit

DEFAULT_API_BASE = "https://api.github.com"


def _require_token(token: str, kind: str) -> None:
    if not token or not token.strip():
        raise ValueError(f"{kind} token must not be empty.")


@dataclass(frozen=True)
class OwnerCredentials:
    """Token of the identity that creates and owns the new repository."""

    token: str = field(repr=False)

    def __post_init__(self) -> None:
        _require_token(self.token, "Owner")


@dataclass(frozen=True)
class CollaboratorCredentials:
    """Token of the collaborator account; only used to accept invitations."""

    token: str = field(repr=False)

    def __post_init__(self) -> None:
        _require_token(self.token, "Collaborator")


@dataclass(frozen=True)
class CollaboratorConfig:
    login: str
    credentials: CollaboratorCredentials

    def __post_init__(self) -> None:
        if not self.login.strip():
            raise ValueError("Collaborator login must not be empty.")


@dataclass(frozen=True)
class GenerationParameters:
    """Inputs fixed for one provisioning run."""

    owner: str
    repo_name: str
    description: str = ""
    seed: str = "python-lib"
    seed_url: str | None = None
    private: bool = True
    variables: Mapping[str, Any] = field(default_factory=dict, hash=False)

    def __post_init__(self) -> None:
        # A private read-only copy; callers keep no handle on the run's variables.
        object.__setattr__(self, "variables", MappingProxyType(copy.deepcopy(dict(self.variables))))


@dataclass(frozen=True)
class RepoReference:
    owner: str
    repo: str
    api_base: str = DEFAULT_API_BASE

    @property
    def full_name(self) -> str:
        return f"{self.owner}/{self.repo}"

    @property
    def web_url(self) -> str:
        """
        Browser URL of the repository.

        api.github.com maps to github.com; Enterprise API roots of the form
        https://host/api/v3 map to https://host.
        """
        parts = urlsplit(self.api_base)
        host = parts.netloc
        if host.startswith("api."):
            host = host[len("api.") :]
        return f"{parts.scheme or 'https'}://{host}/{self.full_name}"

    def to_dict(self) -> dict[str, str]:
        return {"owner": self.owner, "repo": self.repo, "api_base": self.api_base}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> RepoReference:
        return cls(
            owner=str(data["owner"]),
            repo=str(data["repo"]),
            api_base=str(data.get("api_base") or DEFAULT_API_BASE),
        )


class InvitationStatus(str, Enum):
    SKIPPED = "skipped"
    INVITE_FAILED = "invite_failed"
    ACCEPTED = "accepted"
    ACCEPT_FAILED = "accept_failed"


@dataclass(frozen=True)
class InvitationOutcome:
    """Result of the collaborator handshake. Informational only."""

    status: InvitationStatus
    invitation_id: int | None = None
    error: str | None = None

    @classmethod
    def skipped(cls) -> InvitationOutcome:
        return cls(InvitationStatus.SKIPPED)

    @classmethod
    def invite_failed(cls, error: BaseException) -> InvitationOutcome:
        return cls(InvitationStatus.INVITE_FAILED, error=str(error))

    @classmethod
    def accepted(cls, invitation_id: int | None) -> InvitationOutcome:
        return cls(InvitationStatus.ACCEPTED, invitation_id=invitation_id)

    @classmethod
    def accept_failed(cls, invitation_id: int, error: BaseException) -> InvitationOutcome:
        return cls(InvitationStatus.ACCEPT_FAILED, invitation_id=invitation_id, error=str(error))


@dataclass(frozen=True)
class ProvisioningResult:
    reference: RepoReference
    invitation: InvitationOutcome
    redirect: str
    recorded: bool = True
    code: int = 0
