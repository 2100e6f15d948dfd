"""GraphQL page queries for the three traversal levels.

Page sizes are bound through ``$first`` so they can be configured; the
remaining arguments follow what GitHub's schema accepts for each connection.
"""

from __future__ import annotations

from typing import Any

from ghcommitters.models import BranchRef, CommitRecord, RepositoryRef
from ghcommitters.pagination import Connection

_PAGE_INFO = """
      pageInfo {
        hasNextPage
        endCursor
      }"""

_COMMIT_NODES = """
              nodes {
                commitUrl
                author {
                  name
                  email
                }
              }"""

CONTRIBUTED_REPOSITORIES_QUERY = """
query ($userName: String!, $first: Int!, $repoCursor: String) {
  user(login: $userName) {
    repositoriesContributedTo(
      includeUserRepositories: true
      contributionTypes: [COMMIT]
      first: $first
      after: $repoCursor
    ) {%s
      nodes {
        name
        owner {
          login
        }
      }
    }
  }
}
""" % _PAGE_INFO

BRANCH_REFS_QUERY = """
query ($owner: String!, $name: String!, $first: Int!, $refCursor: String) {
  repository(owner: $owner, name: $name) {
    refs(first: $first, refPrefix: "refs/heads/", after: $refCursor) {%s
      nodes {
        name
      }
    }
  }
}
""" % _PAGE_INFO

BRANCH_HISTORY_QUERY = """
query ($owner: String!, $name: String!, $refName: String!, $authorId: ID!, $first: Int!, $commitCursor: String) {
  repository(owner: $owner, name: $name) {
    ref(qualifiedName: $refName) {
      target {
        ... on Commit {
          history(author: {id: $authorId}, first: $first, after: $commitCursor) {%s%s
          }
        }
      }
    }
  }
}
""" % (_PAGE_INFO, _COMMIT_NODES)

DEFAULT_BRANCH_HISTORY_QUERY = """
query ($owner: String!, $name: String!, $authorId: ID!, $first: Int!, $commitCursor: String) {
  repository(owner: $owner, name: $name) {
    defaultBranchRef {
      target {
        ... on Commit {
          history(author: {id: $authorId}, first: $first, after: $commitCursor) {%s%s
          }
        }
      }
    }
  }
}
""" % (_PAGE_INFO, _COMMIT_NODES)


def _repository(node: dict[str, Any]) -> RepositoryRef:
    return RepositoryRef(name=node["name"], owner_login=node["owner"]["login"])


def _branch(node: dict[str, Any]) -> BranchRef:
    return BranchRef(name=node["name"])


def _commit(node: dict[str, Any]) -> CommitRecord:
    # author is nullable in the schema; render it like an empty signature
    author = node.get("author") or {}
    return CommitRecord(
        commit_url=node["commitUrl"],
        author_name=author.get("name") or "",
        author_email=author.get("email") or "",
    )


CONTRIBUTED_REPOSITORIES: Connection[RepositoryRef] = Connection(
    name="repositories",
    query=CONTRIBUTED_REPOSITORIES_QUERY,
    cursor_variable="repoCursor",
    path=("user", "repositoriesContributedTo"),
    parse_node=_repository,
)

BRANCH_REFS: Connection[BranchRef] = Connection(
    name="branches",
    query=BRANCH_REFS_QUERY,
    cursor_variable="refCursor",
    path=("repository", "refs"),
    parse_node=_branch,
)

BRANCH_HISTORY: Connection[CommitRecord] = Connection(
    name="commits",
    query=BRANCH_HISTORY_QUERY,
    cursor_variable="commitCursor",
    path=("repository", "ref", "target", "history"),
    parse_node=_commit,
)

DEFAULT_BRANCH_HISTORY: Connection[CommitRecord] = Connection(
    name="default_branch_commits",
    query=DEFAULT_BRANCH_HISTORY_QUERY,
    cursor_variable="commitCursor",
    path=("repository", "defaultBranchRef", "target", "history"),
    parse_node=_commit,
)
