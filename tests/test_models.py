from __future__ import annotations

import pytest

from provisioner.models import (
    CollaboratorConfig,
    CollaboratorCredentials,
    GenerationParameters,
    InvitationOutcome,
    InvitationStatus,
    OwnerCredentials,
    RepoReference,
)


@pytest.mark.parametrize(
    "api_base, expected",
    [
        ("https://api.github.com", "https://github.com/acme/widget-svc"),
        ("https://ghe.example.com/api/v3", "https://ghe.example.com/acme/widget-svc"),
        ("http://localhost:8080", "http://localhost:8080/acme/widget-svc"),
    ],
)
def test_web_url(api_base: str, expected: str) -> None:
    assert RepoReference(owner="acme", repo="widget-svc", api_base=api_base).web_url == expected


def test_reference_round_trips_through_dict() -> None:
    ref = RepoReference(owner="acme", repo="widget-svc", api_base="https://ghe.example.com/api/v3")
    assert RepoReference.from_dict(ref.to_dict()) == ref
    assert RepoReference.from_dict({"owner": "acme", "repo": "x"}).api_base == "https://api.github.com"


def test_credentials_are_distinct_types() -> None:
    owner = OwnerCredentials("same")
    collaborator = CollaboratorCredentials("same")
    assert owner != collaborator


@pytest.mark.parametrize("token", ["", "   "])
def test_empty_tokens_are_rejected(token: str) -> None:
    with pytest.raises(ValueError):
        OwnerCredentials(token)
    with pytest.raises(ValueError):
        CollaboratorCredentials(token)


def test_collaborator_requires_login() -> None:
    with pytest.raises(ValueError):
        CollaboratorConfig(login=" ", credentials=CollaboratorCredentials("t"))


def test_outcome_constructors() -> None:
    assert InvitationOutcome.skipped().status is InvitationStatus.SKIPPED
    failed = InvitationOutcome.invite_failed(RuntimeError("nope"))
    assert (failed.status, failed.error) == (InvitationStatus.INVITE_FAILED, "nope")
    accept_failed = InvitationOutcome.accept_failed(7, RuntimeError("gone"))
    assert (accept_failed.status, accept_failed.invitation_id) == (InvitationStatus.ACCEPT_FAILED, 7)
    assert InvitationOutcome.accepted(7).invitation_id == 7


def test_parameters_own_a_private_copy_of_variables() -> None:
    source = {"author": "Jane", "tags": ["api"]}
    params = GenerationParameters(owner="acme", repo_name="widget-svc", variables=source)

    source["author"] = "Mallory"
    source["tags"].append("leaked")

    assert params.variables["author"] == "Jane"
    assert params.variables["tags"] == ["api"]


def test_parameters_variables_are_read_only() -> None:
    params = GenerationParameters(owner="acme", repo_name="widget-svc", variables={"author": "Jane"})

    with pytest.raises(TypeError):
        params.variables["author"] = "Mallory"  # type: ignore[index]


def test_parameters_are_hashable() -> None:
    a = GenerationParameters(owner="acme", repo_name="widget-svc", variables={"author": "Jane"})
    b = GenerationParameters(owner="acme", repo_name="widget-svc", variables={"author": "Jane"})

    assert a == b
    assert hash(a) == hash(b)
