"""
cli.py

Responsibility: CLI entrypoint for the repository provisioner.

Commands:
- `provision`: parse a request file, then run the provisioning pipeline
  (seed -> workspace copy -> render -> GitHub repo + push -> record ->
  collaborator invite/accept) and print the new repository's URL.
- `list`: print the repositories recorded in the creation store.

This module only wires configuration together; the stages live in their own
modules and are sequenced by `pipeline.py`.
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import os
import sys
from pathlib import Path

from provisioner.collaborators import CollaboratorInviter, InvitationAccepter
from provisioner.logging import configure_logging, get_logger, mask_sensitive_data
from provisioner.models import (
    DEFAULT_API_BASE,
    CollaboratorConfig,
    CollaboratorCredentials,
    OwnerCredentials,
)
from provisioner.pipeline import FatalProvisioningError, ProvisioningPipeline
from provisioner.publisher import GitHubPublisher
from provisioner.renderer import JinjaTransformer
from provisioner.request_parser import RequestError, parse_request
from provisioner.seeds import DirectorySeedProvider, GitSeedProvider
from provisioner.store import RecordingError, YamlFileStore

logger = get_logger("cli")


class CLIError(RuntimeError):
    pass


def _collaborator_from_args(args: argparse.Namespace) -> CollaboratorConfig | None:
    login = args.collaborator or os.environ.get("PROVISIONER_COLLABORATOR") or ""
    if not login.strip():
        return None
    token = args.collaborator_token or os.environ.get("PROVISIONER_COLLABORATOR_TOKEN") or ""
    if not token.strip():
        raise CLIError(
            f"Collaborator {login} is configured but no collaborator token was given "
            "(use --collaborator-token or set PROVISIONER_COLLABORATOR_TOKEN)"
        )
    return CollaboratorConfig(login=login.strip(), credentials=CollaboratorCredentials(token))


def _owner_credentials_from_args(args: argparse.Namespace) -> OwnerCredentials:
    token = args.github_token or os.environ.get("GITHUB_TOKEN") or ""
    if not token.strip():
        raise CLIError("GitHub token is required (use --github-token or set GITHUB_TOKEN)")
    return OwnerCredentials(token)


def build_pipeline(args: argparse.Namespace, api_base: str) -> ProvisioningPipeline:
    workspace_root = Path(args.workspace_root).resolve()
    return ProvisioningPipeline(
        seed_provider=GitSeedProvider(
            scratch_dir=workspace_root / ".seeds",
            fallback=DirectorySeedProvider(args.templates_dir),
        ),
        transformer=JinjaTransformer(),
        publisher=GitHubPublisher(api_base, deterministic_git=bool(args.deterministic_git), timeout=args.timeout),
        recorder=YamlFileStore(args.store),
        workspace_root=workspace_root,
        inviter=CollaboratorInviter(timeout=args.timeout),
        accepter=InvitationAccepter(timeout=args.timeout),
    )


def provision_cmd(args: argparse.Namespace) -> int:
    request = parse_request(args.request_path)
    params = request.to_parameters(
        owner=args.github_owner,
        seed=args.seed,
        seed_url=args.seed_url,
        private=args.private,
    )
    owner_credentials = _owner_credentials_from_args(args)
    collaborator = None if args.skip_collaborator else _collaborator_from_args(args)
    api_base = args.api_base or os.environ.get("GITHUB_API_URL") or DEFAULT_API_BASE

    pipeline = build_pipeline(args, api_base)
    result = asyncio.run(pipeline.provision(params, owner_credentials, collaborator))

    if not result.recorded:
        print(f"warning: {result.reference.full_name} was created but not recorded in {args.store}", file=sys.stderr)
    print(result.redirect)
    return result.code


def list_cmd(args: argparse.Namespace) -> int:
    for ref in YamlFileStore(args.store).list():
        print(ref.web_url)
    return 0


def _build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="repo-provisioner", description="Provision GitHub repositories from seed projects")
    p.add_argument("-v", "--verbose", action="count", default=0, help="Increase log verbosity (-v info, -vv debug)")
    p.add_argument("--store", default="created-repos.yaml", help="YAML file recording created repositories")
    sub = p.add_subparsers(dest="command", required=True)

    b = sub.add_parser("provision", help="Copy a seed, render it, publish it to GitHub, add the collaborator")
    b.add_argument("request_path", help="Path to the request markdown file")
    b.add_argument("--templates-dir", default="templates", help="Seed templates directory (default: templates)")
    b.add_argument("--seed", default=None, help="Seed template name (overrides the request's seed)")
    b.add_argument("--seed-url", default=None, help="Git URL of a seed repository to clone instead of a template")
    b.add_argument("--workspace-root", default="generated", help="Directory holding per-run workspaces")

    b.add_argument("--github-owner", default=None, help="GitHub owner (user or org)")
    b.add_argument("--github-token", default=None, help="GitHub token of the owner (or set env GITHUB_TOKEN)")
    b.add_argument("--api-base", default=None, help=f"GitHub API root (or set env GITHUB_API_URL; default {DEFAULT_API_BASE})")
    b.add_argument("--private", dest="private", action="store_true", default=None, help="Create a private repo")
    b.add_argument("--public", dest="private", action="store_false", default=None, help="Create a public repo")
    b.add_argument("--timeout", type=float, default=30.0, help="Timeout in seconds for each GitHub API request")

    b.add_argument("--collaborator", default=None, help="Account to grant push access (or set PROVISIONER_COLLABORATOR)")
    b.add_argument(
        "--collaborator-token",
        default=None,
        help="Token of the collaborator account, used to accept the invitation (or set PROVISIONER_COLLABORATOR_TOKEN)",
    )
    b.add_argument("--skip-collaborator", action="store_true", help="Do not add any collaborator")

    b.add_argument(
        "--deterministic-git",
        action="store_true",
        default=True,
        help="Use deterministic git author/commit timestamps (default: enabled)",
    )
    b.add_argument(
        "--no-deterministic-git",
        dest="deterministic_git",
        action="store_false",
        help="Disable deterministic git commit timestamps",
    )
    b.set_defaults(func=provision_cmd)

    ls = sub.add_parser("list", help="List repositories recorded as created")
    ls.set_defaults(func=list_cmd)
    return p


def main(argv: list[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)
    level = {0: logging.WARNING, 1: logging.INFO}.get(args.verbose, logging.DEBUG)
    configure_logging(level=level)
    try:
        return int(args.func(args))
    except (FatalProvisioningError, RequestError, RecordingError, CLIError) as e:
        logger.debug("Command failed", exc_info=True)
        print(f"error: {mask_sensitive_data(str(e))}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
