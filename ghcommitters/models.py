"""Value types shared by the resolver, the traversal and the aggregator."""

from __future__ import annotations

from dataclasses import dataclass


def identity_key(name: str, email: str) -> str:
    """Canonical ``Name <email>`` form. Used verbatim, no case folding."""
    return f"{name} <{email}>"


@dataclass(frozen=True)
class Account:
    handle: str
    opaque_id: str


@dataclass(frozen=True)
class RepositoryRef:
    name: str
    owner_login: str

    @property
    def full_name(self) -> str:
        return f"{self.owner_login}/{self.name}"


@dataclass(frozen=True)
class BranchRef:
    name: str

    @property
    def qualified_name(self) -> str:
        return f"refs/heads/{self.name}"


@dataclass(frozen=True)
class CommitRecord:
    commit_url: str
    author_name: str
    author_email: str

    @property
    def identity(self) -> str:
        return identity_key(self.author_name, self.author_email)
