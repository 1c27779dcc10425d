"""
collaborators.py

Responsibility: Give a configured account push access to a new repository.

GitHub requires consent from both sides before an outside account can push:
the repository owner invites (owner token), the invited account accepts
(its own token). `CollaboratorInviter` and `InvitationAccepter` perform one
request each and raise on failure; `add_collaborator` sequences them and folds
every failure into an `InvitationOutcome`, so nothing here can fail a run.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Callable

import requests

from provisioner.github_client import GitHubClient, GitHubError
from provisioner.logging import get_logger
from provisioner.models import (
    CollaboratorConfig,
    CollaboratorCredentials,
    InvitationOutcome,
    OwnerCredentials,
    RepoReference,
)

logger = get_logger("collaborators")

ClientFactory = Callable[..., GitHubClient]


class CollaboratorInviteError(RuntimeError):
    pass


class CollaboratorAcceptError(RuntimeError):
    pass


@dataclass(frozen=True)
class InviteResult:
    invitation_id: int | None
    already_collaborator: bool = False


class CollaboratorInviter:
    def __init__(self, *, permission: str = "push", timeout: float = 30.0, client_factory: ClientFactory = GitHubClient) -> None:
        self._permission = permission
        self._timeout = timeout
        self._client_factory = client_factory

    def invite(self, ref: RepoReference, login: str, credentials: OwnerCredentials) -> InviteResult:
        gh = self._client_factory(credentials, api_base=ref.api_base, timeout=self._timeout)
        logger.info(
            "Attempting to install %s as a collaborator on %s with %s permission",
            login,
            ref.full_name,
            self._permission,
        )
        try:
            payload = gh.add_collaborator(ref.owner, ref.repo, login, permission=self._permission)
        except (GitHubError, requests.RequestException) as e:
            raise CollaboratorInviteError(f"Unable to install {login} as a collaborator on {ref.full_name}: {e}") from e

        if payload is None:
            return InviteResult(invitation_id=None, already_collaborator=True)
        try:
            return InviteResult(invitation_id=int(payload["id"]))
        except (KeyError, TypeError, ValueError) as e:
            raise CollaboratorInviteError(f"Invitation response for {ref.full_name} carries no id: {payload!r}") from e


class InvitationAccepter:
    def __init__(self, *, timeout: float = 30.0, client_factory: ClientFactory = GitHubClient) -> None:
        self._timeout = timeout
        self._client_factory = client_factory

    def accept(self, ref: RepoReference, invitation_id: int, credentials: CollaboratorCredentials) -> None:
        gh = self._client_factory(credentials, api_base=ref.api_base, timeout=self._timeout)
        logger.debug("Accepting invitation %s to %s", invitation_id, ref.full_name)
        try:
            gh.accept_invitation(invitation_id)
        except (GitHubError, requests.RequestException) as e:
            raise CollaboratorAcceptError(f"Failure accepting invitation {invitation_id} to {ref.full_name}: {e}") from e


async def add_collaborator(
    ref: RepoReference,
    collaborator: CollaboratorConfig | None,
    owner_credentials: OwnerCredentials,
    *,
    inviter: CollaboratorInviter,
    accepter: InvitationAccepter,
) -> InvitationOutcome:
    """
    Invite `collaborator` to `ref` and accept the invitation on its behalf.

    Always returns an outcome; failures are logged and reported through it.
    """
    if collaborator is None:
        logger.warning("No collaborator configured on %s - Not installing", ref.full_name)
        return InvitationOutcome.skipped()

    try:
        invited = await asyncio.to_thread(inviter.invite, ref, collaborator.login, owner_credentials)
    except Exception as e:  # noqa: BLE001 - the handshake never fails a run
        logger.warning("Unable to install %s as a collaborator on %s - Failed with %s", collaborator.login, ref.full_name, e)
        return InvitationOutcome.invite_failed(e)

    if invited.invitation_id is None:
        logger.info("%s already has access to %s", collaborator.login, ref.full_name)
        return InvitationOutcome.accepted(None)

    try:
        await asyncio.to_thread(accepter.accept, ref, invited.invitation_id, collaborator.credentials)
    except Exception as e:  # noqa: BLE001 - the handshake never fails a run
        logger.warning("Failure accepting invitation to %s: %s", ref.full_name, e)
        return InvitationOutcome.accept_failed(invited.invitation_id, e)

    logger.debug("Invitation %s accepted", invited.invitation_id)
    return InvitationOutcome.accepted(invited.invitation_id)
