"""Nested walk: contributed repositories -> branches -> author history."""

from __future__ import annotations

import logging
import time
import uuid
from dataclasses import dataclass, field
from typing import Any, Iterator, Optional

from ghcommitters.aggregator import observe
from ghcommitters.config import BranchPolicy, TraversalConfig
from ghcommitters.models import Account, BranchRef, CommitRecord, RepositoryRef
from ghcommitters.pacing import Deadline, NoDelay, PagePacer
from ghcommitters.pagination import Connection, GraphQLExecutor, Page, fetch_page, walk_pages
from ghcommitters.queries import (
    BRANCH_HISTORY,
    BRANCH_REFS,
    CONTRIBUTED_REPOSITORIES,
    DEFAULT_BRANCH_HISTORY,
)

logger = logging.getLogger("ghcommitters.traversal")


@dataclass
class TraversalStats:
    run_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    repositories: int = 0
    branches: int = 0
    pages: int = 0
    commits: int = 0
    emitted: int = 0
    started_at: float = field(default_factory=time.monotonic)

    @property
    def duration_s(self) -> float:
        return round(time.monotonic() - self.started_at, 3)

    def as_dict(self) -> dict[str, Any]:
        return {
            "repositories": self.repositories,
            "branches": self.branches,
            "pages": self.pages,
            "commits": self.commits,
            "emitted": self.emitted,
        }


class TraversalEngine:
    """Walks every commit ``account`` authored, one page at a time.

    Strictly sequential: each level finishes consuming a page before it asks
    for the next one, and ``pacer`` runs between consecutive pages of the
    same collection. Any error raised by the client ends the whole walk.
    """

    def __init__(
        self,
        client: GraphQLExecutor,
        account: Account,
        *,
        settings: Optional[TraversalConfig] = None,
        pacer: Optional[PagePacer] = None,
        deadline: Optional[Deadline] = None,
    ) -> None:
        self.client = client
        self.account = account
        self.settings = settings or TraversalConfig()
        self.pacer = pacer or NoDelay()
        self.deadline = deadline
        self.stats = TraversalStats()

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def iter_identities(
        self, *, show_all: bool = False, include_source: bool = False
    ) -> Iterator[str]:
        """Yield output lines in order of discovery.

        Each call starts a fresh run with its own identity set.
        """
        seen: set[str] = set()
        for commit in self.iter_commits():
            line = observe(commit, seen, show_all=show_all, include_source=include_source)
            if line is not None:
                self.stats.emitted += 1
                yield line

    def iter_commits(self) -> Iterator[CommitRecord]:
        """Yield every commit by the account in traversal order; resets ``stats``."""
        self.stats = TraversalStats()
        logger.info(
            "Starting traversal for %s (branch policy: %s)",
            self.account.handle,
            self.settings.branch_policy.value,
            extra=self._extra(),
        )
        for repo in self._iter_repositories():
            self.stats.repositories += 1
            logger.info("Scanning %s", repo.full_name, extra=self._extra(repository=repo.full_name))
            if self.settings.branch_policy is BranchPolicy.DEFAULT_BRANCH:
                yield from self._iter_default_branch_commits(repo)
                continue
            for branch in self._iter_branches(repo):
                self.stats.branches += 1
                yield from self._iter_branch_commits(repo, branch)
        logger.info(
            "Traversal complete: %s",
            self.stats.as_dict(),
            extra=self._extra(records=self.stats.commits, duration_s=self.stats.duration_s),
        )

    # ------------------------------------------------------------------
    # Levels
    # ------------------------------------------------------------------

    def _iter_repositories(self) -> Iterator[RepositoryRef]:
        """Repositories the account committed to, its own included."""
        variables = {
            "userName": self.account.handle,
            "first": self.settings.repo_page_size,
        }
        yield from self._iter_items(CONTRIBUTED_REPOSITORIES, variables)

    def _iter_branches(self, repo: RepositoryRef) -> Iterator[BranchRef]:
        """Every branch under refs/heads/ of ``repo``."""
        variables = {
            "owner": repo.owner_login,
            "name": repo.name,
            "first": self.settings.branch_page_size,
        }
        yield from self._iter_items(BRANCH_REFS, variables, repository=repo.full_name)

    def _iter_branch_commits(self, repo: RepositoryRef, branch: BranchRef) -> Iterator[CommitRecord]:
        """The account's commits reachable from ``branch``."""
        logger.debug(
            "Scanning %s@%s",
            repo.full_name,
            branch.name,
            extra=self._extra(repository=repo.full_name, branch=branch.name),
        )
        variables = {
            "owner": repo.owner_login,
            "name": repo.name,
            "refName": branch.qualified_name,
            "authorId": self.account.opaque_id,
            "first": self.settings.commit_page_size,
        }
        for commit in self._iter_items(
            BRANCH_HISTORY, variables, repository=repo.full_name, branch=branch.name
        ):
            self.stats.commits += 1
            yield commit

    def _iter_default_branch_commits(self, repo: RepositoryRef) -> Iterator[CommitRecord]:
        """The account's commits on the default branch only."""
        variables = {
            "owner": repo.owner_login,
            "name": repo.name,
            "authorId": self.account.opaque_id,
            "first": self.settings.commit_page_size,
        }
        for commit in self._iter_items(DEFAULT_BRANCH_HISTORY, variables, repository=repo.full_name):
            self.stats.commits += 1
            yield commit

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _iter_items(self, connection: Connection[Any], variables: dict[str, Any], **context: str) -> Iterator[Any]:
        """Flatten the pages of ``connection`` into items."""
        for page in self._iter_pages(connection, variables, **context):
            yield from page.items

    def _iter_pages(self, connection: Connection[Any], variables: dict[str, Any], **context: str) -> Iterator[Page[Any]]:
        """Walk ``connection`` page by page, counting and logging each page."""
        page_no = 0

        def fetch(cursor: Optional[str]):
            return fetch_page(self.client, connection, variables, cursor)

        for page in walk_pages(fetch, pacer=self.pacer, deadline=self.deadline):
            page_no += 1
            self.stats.pages += 1
            logger.debug(
                "Fetched %s page %d (%d items, more=%s)",
                connection.name,
                page_no,
                len(page.items),
                page.has_next_page,
                extra=self._extra(connection=connection.name, page=page_no, records=len(page.items), **context),
            )
            yield page

    def _extra(self, **fields: Any) -> dict[str, Any]:
        """Log context shared by every record of this run."""
        return {"account": self.account.handle, "run_id": self.stats.run_id, **fields}
