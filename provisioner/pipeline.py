"""
pipeline.py

Responsibility: Provision one repository from a seed, end to end.

Stages run strictly in order, each awaiting the previous one:

1) seed       fetch the seed project
2) copy       copy it into an isolated workspace named after the repository
              (the seed is released afterwards, even if the copy failed)
3) sanitize   strip inherited VCS metadata from the copy
4) transform  apply generator edits to the copy
5) publish    create the remote repository and push; yields a RepoReference
6) record     remember the reference (best-effort)
7) invite     invite the collaborator with the owner's credentials (best-effort)
8) accept     accept with the collaborator's credentials (best-effort)

A failure in 1-5 raises `FatalProvisioningError` and nothing later runs.
Failures in 6-8 are logged and reported on the `ProvisioningResult`.

Blocking work runs in worker threads (`asyncio.to_thread`); credentials are
arguments of `provision`, never state of the pipeline.
"""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Any, Callable, Protocol, TypeVar

from provisioner.collaborators import CollaboratorInviter, InvitationAccepter, add_collaborator
from provisioner.logging import get_logger
from provisioner.models import (
    CollaboratorConfig,
    GenerationParameters,
    OwnerCredentials,
    ProvisioningResult,
    RepoReference,
)
from provisioner.workspace import copy_seed, strip_vcs_metadata

logger = get_logger("pipeline")

T = TypeVar("T")


class SeedProvider(Protocol):
    def fetch_seed(self, params: GenerationParameters) -> Path: ...

    def release(self, seed: Path) -> None: ...


class ContentTransformer(Protocol):
    def transform(self, project_dir: Path, params: GenerationParameters) -> Path: ...


class RemotePublisher(Protocol):
    def publish(self, project_dir: Path, credentials: OwnerCredentials, params: GenerationParameters) -> RepoReference: ...


class CreationRecorder(Protocol):
    def put(self, ref: RepoReference) -> None: ...


class FatalProvisioningError(RuntimeError):
    """A stage before the repository was confirmed failed; nothing was provisioned."""

    def __init__(self, stage: str, message: str) -> None:
        super().__init__(f"Provisioning failed at stage '{stage}': {message}")
        self.stage = stage


async def _stage(stage: str, func: Callable[..., T], *args: Any) -> T:
    logger.debug("Running stage %s", stage)
    try:
        return await asyncio.to_thread(func, *args)
    except Exception as e:  # noqa: BLE001 - surface as FatalProvisioningError
        raise FatalProvisioningError(stage, str(e)) from e


class ProvisioningPipeline:
    def __init__(
        self,
        *,
        seed_provider: SeedProvider,
        transformer: ContentTransformer,
        publisher: RemotePublisher,
        recorder: CreationRecorder,
        workspace_root: str | Path,
        inviter: CollaboratorInviter | None = None,
        accepter: InvitationAccepter | None = None,
    ) -> None:
        self._seed_provider = seed_provider
        self._transformer = transformer
        self._publisher = publisher
        self._recorder = recorder
        self._workspace_root = Path(workspace_root)
        self._inviter = inviter or CollaboratorInviter()
        self._accepter = accepter or InvitationAccepter()

    async def provision(
        self,
        params: GenerationParameters,
        owner_credentials: OwnerCredentials,
        collaborator: CollaboratorConfig | None = None,
    ) -> ProvisioningResult:
        logger.info("Provisioning %s/%s from seed %s", params.owner, params.repo_name, params.seed_url or params.seed)

        seed = await _stage("seed", self._seed_provider.fetch_seed, params)
        try:
            workdir = await _stage("copy", copy_seed, seed, self._workspace_root, params.repo_name)
        finally:
            await self._release(seed)
        await _stage("sanitize", strip_vcs_metadata, workdir)
        populated = await _stage("transform", self._transformer.transform, workdir, params)
        ref = await _stage("publish", self._publisher.publish, populated, owner_credentials, params)

        if (ref.owner, ref.repo) != (params.owner, params.repo_name):
            raise FatalProvisioningError(
                "publish",
                f"publisher returned {ref.full_name}, expected {params.owner}/{params.repo_name}",
            )

        recorded = await self._record(ref)
        invitation = await add_collaborator(
            ref,
            collaborator,
            owner_credentials,
            inviter=self._inviter,
            accepter=self._accepter,
        )
        logger.info("Provisioned %s (collaborator: %s)", ref.full_name, invitation.status.value)
        return ProvisioningResult(
            reference=ref,
            invitation=invitation,
            redirect=ref.web_url,
            recorded=recorded,
        )

    async def _release(self, seed: Path) -> None:
        try:
            await asyncio.to_thread(self._seed_provider.release, seed)
        except Exception as e:  # noqa: BLE001 - cleanup never fails the run
            logger.warning("Could not release seed %s: %s", seed, e)

    async def _record(self, ref: RepoReference) -> bool:
        try:
            await asyncio.to_thread(self._recorder.put, ref)
        except Exception as e:  # noqa: BLE001 - the repository exists either way
            # Operators must reconcile: the repository exists but is not tracked.
            logger.error("Created %s but failed to record it: %s", ref.full_name, e)
            return False
        logger.info("Remembering we created repo %s", ref.full_name)
        return True
