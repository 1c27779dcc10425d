"""
request_parser.py

Responsibility: Load a generation request file into `GenerationParameters`.

This implementation intentionally stays conservative:
- It prefers YAML frontmatter at the top of the markdown file.
- Without frontmatter, the first paragraph of `key: value` lines is used.

CLI flags may override the owner, seed and visibility afterwards; see `cli.py`.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from provisioner.models import GenerationParameters


class RequestError(ValueError):
    pass


@dataclass(frozen=True)
class GitHubRequest:
    """GitHub-related settings parsed from the request."""

    owner: str | None = None
    private: bool = True


@dataclass(frozen=True)
class GenerationRequest:
    """Parsed request contents; owner may still be missing until CLI overrides apply."""

    repo_name: str
    description: str = ""
    seed: str = "python-lib"
    seed_url: str | None = None
    github: GitHubRequest = field(default_factory=GitHubRequest)
    variables: dict[str, Any] = field(default_factory=dict)

    def to_parameters(
        self,
        *,
        owner: str | None = None,
        seed: str | None = None,
        seed_url: str | None = None,
        private: bool | None = None,
    ) -> GenerationParameters:
        resolved_owner = owner or self.github.owner
        if not resolved_owner:
            raise RequestError("A GitHub owner is required (set `github.owner` or pass --github-owner)")
        return GenerationParameters(
            owner=resolved_owner,
            repo_name=self.repo_name,
            description=self.description,
            seed=seed or self.seed,
            seed_url=seed_url or self.seed_url,
            private=self.github.private if private is None else private,
            variables=self.variables,
        )


_OPENING_FENCE = re.compile(r"\A---[ \t]*\r?\n")
_FRONTMATTER = re.compile(r"\A---[ \t]*\r?\n(.*?)^---[ \t]*\r?$\n?", re.MULTILINE | re.DOTALL)
_KEY_VALUE_LINE = re.compile(r"^\s*([A-Za-z_][\w-]*)\s*:\s*(.*?)\s*$")


def _split_frontmatter(text: str) -> tuple[dict[str, Any] | None, str]:
    """Return the parsed `---` fenced header (or None when absent) and the markdown body after it."""
    if not _OPENING_FENCE.match(text):
        return None, text

    match = _FRONTMATTER.match(text)
    if match is None:
        raise RequestError("YAML frontmatter starts with '---' but no closing '---' was found.")

    try:
        data = yaml.safe_load(match.group(1))
    except yaml.YAMLError as e:
        raise RequestError(f"Invalid YAML frontmatter: {e}") from e
    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise RequestError("YAML frontmatter must be a mapping/object at the top level.")
    return data, text[match.end() :]


def _scalar(raw: str) -> Any:
    # `false`, `3` and quoted strings get their YAML meaning; anything structured stays text.
    if not raw:
        return None
    try:
        value = yaml.safe_load(raw)
    except yaml.YAMLError:
        return raw
    return raw if isinstance(value, (dict, list)) else value


def _key_value_header(text: str) -> dict[str, Any]:
    """
    Fallback for requests without frontmatter: the first paragraph of
    `key: value` lines, skipping leading headings and blank lines.
    """
    pairs: dict[str, Any] = {}
    for line in text.splitlines():
        if not line.strip():
            if pairs:
                break
            continue
        match = _KEY_VALUE_LINE.match(line)
        if match:
            pairs[match.group(1)] = _scalar(match.group(2))
    return pairs


def _parse_bool(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() not in ("false", "no", "0", "off", "")
    return bool(value)


def _text(data: dict[str, Any], *keys: str) -> str | None:
    """First non-empty value among `keys`, stripped; None when all are blank."""
    for key in keys:
        value = data.get(key)
        if value is not None and str(value).strip():
            return str(value).strip()
    return None


def _section(data: dict[str, Any], key: str) -> dict[str, Any]:
    value = data.get(key)
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise RequestError(f"`{key}` must be an object/mapping when provided.")
    return value


def parse_request_text(text: str) -> GenerationRequest:
    frontmatter, _body = _split_frontmatter(text)
    data = frontmatter if frontmatter is not None else _key_value_header(text)

    repo_name = _text(data, "repo_name", "name")
    if repo_name is None:
        raise RequestError("Request must define `repo_name` (YAML frontmatter recommended).")
    if "/" in repo_name or repo_name in (".", ".."):
        raise RequestError(f"`repo_name` must be a bare repository name, got {repo_name!r}")

    github = _section(data, "github")
    # `owner` and `private` may also sit at the top level; the `github` block wins.
    settings = GitHubRequest(
        owner=_text(github, "owner") or _text(data, "owner"),
        private=_parse_bool(github.get("private", data.get("private", True))),
    )

    # Sorted keys keep rendering deterministic.
    variables = {str(k): v for k, v in sorted(_section(data, "variables").items(), key=lambda kv: str(kv[0]))}

    return GenerationRequest(
        repo_name=repo_name,
        description=_text(data, "description") or "",
        seed=_text(data, "seed", "template") or "python-lib",
        seed_url=_text(data, "seed_url"),
        github=settings,
        variables=variables,
    )


def parse_request(request_path: str | Path) -> GenerationRequest:
    """
    Parse a markdown request file into a `GenerationRequest`.

    Expected (recommended) YAML frontmatter keys:
    - repo_name: str (required)
    - description: str
    - seed: str (template name)
    - seed_url: str (git URL of a seed repository)
    - github.owner: str
    - github.private: bool
    - variables: dict (optional additional values for templates)
    """
    path = Path(request_path)
    if not path.exists():
        raise RequestError(f"Request file does not exist: {path}")
    return parse_request_text(path.read_text(encoding="utf-8"))
