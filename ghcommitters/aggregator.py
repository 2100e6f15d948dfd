"""Per-commit emission policy."""

from __future__ import annotations

from typing import Optional

from ghcommitters.models import CommitRecord


def format_line(identity: str, commit_url: str, include_source: bool) -> str:
    if include_source:
        return f"{identity} - {commit_url}"
    return identity


def observe(
    commit: CommitRecord,
    seen: set[str],
    *,
    show_all: bool = False,
    include_source: bool = False,
) -> Optional[str]:
    """Return the line to emit for ``commit``, or None if it is a repeat.

    ``seen`` belongs to one traversal and only ever grows. With ``show_all``
    every commit is emitted and ``seen`` is left untouched.
    """
    identity = commit.identity
    if not show_all:
        if identity in seen:
            return None
        seen.add(identity)
    return format_line(identity, commit.commit_url, include_source)
