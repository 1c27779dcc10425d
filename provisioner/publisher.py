"""
publisher.py

Responsibility: Publish a populated project as a new GitHub repository.

Flow:
1) Refuse if the target repository already exists (nothing is created).
2) Create the repository through the GitHub REST API (`github_client.py`).
3) Initialize git in the project, commit everything, push to `main`.

The returned `RepoReference` is the confirmation that the repository exists;
no other module constructs one for a fresh repository.
"""

from __future__ import annotations

import os
import subprocess
from pathlib import Path

import requests

from provisioner.github_client import GitHubClient, GitHubError
from provisioner.logging import get_logger, mask_sensitive_data
from provisioner.models import DEFAULT_API_BASE, GenerationParameters, OwnerCredentials, RepoReference

logger = get_logger("publisher")


class PublishError(RuntimeError):
    pass


def _run(cmd: list[str], *, cwd: Path, env: dict[str, str] | None = None) -> None:
    """
    Run a subprocess command, raising a PublishError on failure.

    The command line may carry a tokenized remote URL, so it is masked before
    it ends up in the error message.
    """
    shown = mask_sensitive_data(" ".join(cmd))
    try:
        subprocess.run(cmd, cwd=str(cwd), env=env, check=True, stdout=subprocess.PIPE, stderr=subprocess.STDOUT, text=True)
    except subprocess.CalledProcessError as e:
        raise PublishError(f"Command failed: {shown}\n\n{mask_sensitive_data(e.stdout or '')}") from None
    except OSError as e:
        raise PublishError(f"Command failed: {shown}: {e}") from e


def _git_env_deterministic(base_env: dict[str, str]) -> dict[str, str]:
    """
    Deterministic git commit metadata to reduce non-determinism in generated repos.
    """
    env = dict(base_env)
    env.setdefault("GIT_AUTHOR_NAME", "repo-provisioner")
    env.setdefault("GIT_AUTHOR_EMAIL", "repo-provisioner@example.invalid")
    env.setdefault("GIT_COMMITTER_NAME", "repo-provisioner")
    env.setdefault("GIT_COMMITTER_EMAIL", "repo-provisioner@example.invalid")
    env.setdefault("GIT_AUTHOR_DATE", "1970-01-01T00:00:00Z")
    env.setdefault("GIT_COMMITTER_DATE", "1970-01-01T00:00:00Z")
    return env


def _tokenized_https_remote(clone_url: str, token: str) -> str:
    """
    Convert https://github.com/owner/name.git into an HTTPS URL containing a token.
    """
    # GitHub supports x-access-token in the username position.
    return clone_url.replace("https://", f"https://x-access-token:{token}@", 1)


def git_init_commit_push(*, workdir: Path, remote_url: str, deterministic_git: bool) -> None:
    base_env = os.environ.copy()
    env = _git_env_deterministic(base_env) if deterministic_git else base_env

    _run(["git", "init"], cwd=workdir, env=env)
    _run(["git", "checkout", "-B", "main"], cwd=workdir, env=env)
    _run(["git", "add", "-A"], cwd=workdir, env=env)
    _run(["git", "commit", "--allow-empty", "-m", "Initial commit"], cwd=workdir, env=env)
    _run(["git", "remote", "add", "origin", remote_url], cwd=workdir, env=env)
    _run(["git", "push", "-u", "origin", "main"], cwd=workdir, env=env)


class GitHubPublisher:
    def __init__(self, api_base: str = DEFAULT_API_BASE, *, deterministic_git: bool = True, timeout: float = 30.0) -> None:
        self._api_base = api_base.rstrip("/")
        self._deterministic_git = deterministic_git
        self._timeout = timeout

    def publish(self, project_dir: Path, credentials: OwnerCredentials, params: GenerationParameters) -> RepoReference:
        gh = GitHubClient(credentials, api_base=self._api_base, timeout=self._timeout)
        try:
            if gh.get_repo(params.owner, params.repo_name) is not None:
                raise PublishError(f"Repository {params.owner}/{params.repo_name} already exists")
            repo = gh.create_repo(
                owner=params.owner,
                name=params.repo_name,
                private=params.private,
                description=params.description,
            )
        except (GitHubError, requests.RequestException) as e:
            raise PublishError(f"Unable to create {params.owner}/{params.repo_name}: {e}") from e

        logger.debug("Persisting repo at [%s] to GitHub: %s:%s", project_dir, params.owner, params.repo_name)
        try:
            git_init_commit_push(
                workdir=Path(project_dir),
                remote_url=_tokenized_https_remote(repo.clone_url, credentials.token),
                deterministic_git=self._deterministic_git,
            )
        except PublishError as e:
            # The repository exists on the host now; a rerun fails with "already exists" until it is removed.
            raise PublishError(
                f"{e}\n\n{params.owner}/{params.repo_name} was created at {repo.html_url} but its content "
                "was not pushed; delete it manually before retrying"
            ) from e
        return RepoReference(owner=params.owner, repo=params.repo_name, api_base=self._api_base)
