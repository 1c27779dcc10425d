"""
github_client.py

Responsibility: Isolate all direct GitHub REST API interaction.

This module must be the only place that:
- Constructs GitHub REST endpoints
- Sends HTTP requests to the API root of a GitHub host
- Interprets GitHub API responses / error payloads

Publishing and the collaborator handshake both go through `GitHubClient`; each
client is bound to exactly one credential, so the owner token and the
collaborator token are never mixed on one client.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

import requests

from provisioner.logging import get_logger, safe_headers
from provisioner.models import DEFAULT_API_BASE, CollaboratorCredentials, OwnerCredentials

logger = get_logger("github")


class GitHubError(RuntimeError):
    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


@dataclass(frozen=True)
class RepoInfo:
    owner: str
    name: str
    html_url: str
    clone_url: str
    default_branch: str


class GitHubClient:
    def __init__(
        self,
        credentials: OwnerCredentials | CollaboratorCredentials,
        api_base: str = DEFAULT_API_BASE,
        timeout: float = 30.0,
    ) -> None:
        self._token = credentials.token
        self._api_base = api_base.rstrip("/")
        self._timeout = timeout

    @property
    def api_base(self) -> str:
        return self._api_base

    def _headers(self) -> dict[str, str]:
        return {
            "Accept": "application/vnd.github+json",
            "Authorization": f"Bearer {self._token}",
            "X-GitHub-Api-Version": "2022-11-28",
            "User-Agent": "repo-provisioner",
        }

    def _request(self, method: str, path: str, *, json_body: dict[str, Any] | None = None) -> Any:
        url = f"{self._api_base}{path}"
        headers = self._headers()
        logger.debug("%s %s headers=%s", method, url, safe_headers(headers))
        r = requests.request(method, url, headers=headers, json=json_body, timeout=self._timeout)
        logger.debug("Response %s from %s %s", r.status_code, method, url)
        if r.status_code >= 400:
            try:
                payload = r.json()
            except ValueError:
                payload = {"message": r.text}
            message = payload.get("message", payload) if isinstance(payload, dict) else payload
            raise GitHubError(
                f"GitHub API error {r.status_code} {method} {path}: {message}",
                status_code=r.status_code,
            )
        if r.status_code == 204 or not r.content:
            return None
        return r.json()

    @staticmethod
    def _repo_info(owner: str, name: str, data: dict[str, Any]) -> RepoInfo:
        return RepoInfo(
            owner=owner,
            name=name,
            html_url=data["html_url"],
            clone_url=data["clone_url"],
            default_branch=data.get("default_branch") or "main",
        )

    def get_repo(self, owner: str, name: str) -> RepoInfo | None:
        """
        Return RepoInfo if the repo exists and is accessible; otherwise None.
        """
        try:
            data = self._request("GET", f"/repos/{owner}/{name}")
        except GitHubError as e:
            if e.status_code == 404:
                return None
            raise
        return self._repo_info(owner, name, data)

    def create_repo(
        self,
        *,
        owner: str,
        name: str,
        private: bool,
        description: str = "",
    ) -> RepoInfo:
        """
        Create a new repository under either:
        - the authenticated user (if owner matches the viewer login), OR
        - an organization (if owner is an org).

        Git operations are handled by the publisher.
        """
        viewer = self._request("GET", "/user")
        viewer_login = str(viewer.get("login") or "")

        body = {
            "name": name,
            "private": private,
            "description": description,
            "auto_init": False,
            "has_issues": True,
            "has_projects": False,
            "has_wiki": False,
        }

        if owner.lower() == viewer_login.lower():
            data = self._request("POST", "/user/repos", json_body=body)
        else:
            data = self._request("POST", f"/orgs/{owner}/repos", json_body=body)

        return self._repo_info(owner, name, data)

    def add_collaborator(self, owner: str, name: str, login: str, permission: str = "push") -> dict[str, Any] | None:
        """
        Invite `login` to the repository.

        Returns the invitation payload (HTTP 201), or None when GitHub answers
        204 because the account already has access.
        """
        return self._request(
            "PUT",
            f"/repos/{owner}/{name}/collaborators/{login}",
            json_body={"permission": permission},
        )

    def accept_invitation(self, invitation_id: int) -> None:
        """Accept a repository invitation addressed to the authenticated user."""
        self._request("PATCH", f"/user/repository_invitations/{invitation_id}")
