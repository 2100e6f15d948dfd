"""Configuration from CLI values, environment variables and a local ``.env``.

CLI values win over the environment. The token may be a secret reference
(``aws-secret://...``, ``gcp-secret://...``) resolved through
:mod:`ghcommitters.secrets`.
"""

from __future__ import annotations

import enum
import os
from dataclasses import dataclass, field
from typing import Optional

from dotenv import find_dotenv, load_dotenv

from ghcommitters.errors import ConfigError
from ghcommitters.secrets import resolve_secret

TOKEN_ENV_VARS = ("GH_TOKEN", "GITHUB_TOKEN")
MAX_PAGE_SIZE = 100  # GitHub's cap on `first`


class BranchPolicy(enum.Enum):
    ALL_BRANCHES = "all"
    DEFAULT_BRANCH = "default"


@dataclass(frozen=True)
class GitHubConfig:
    token: str
    api_base_url: str = "https://api.github.com"
    graphql_url: str = ""
    request_timeout_s: float = 30.0
    max_rate_limit_waits: int = 5

    @property
    def graphql_endpoint(self) -> str:
        return self.graphql_url or f"{self.api_base_url.rstrip('/')}/graphql"


@dataclass(frozen=True)
class TraversalConfig:
    repo_page_size: int = 50
    branch_page_size: int = 10
    commit_page_size: int = 50
    page_delay_s: float = 0.5
    branch_policy: BranchPolicy = BranchPolicy.ALL_BRANCHES
    timeout_s: Optional[float] = None


@dataclass(frozen=True)
class SearchConfig:
    handle: str
    github: GitHubConfig
    traversal: TraversalConfig = field(default_factory=TraversalConfig)
    print_source: bool = False
    show_all: bool = False
    log_level: str = "INFO"


def _env_float(name: str, default: Optional[float]) -> Optional[float]:
    raw = os.environ.get(name, "")
    if not raw:
        return default
    try:
        value = float(raw)
    except ValueError:
        raise ConfigError(f"{name} must be a number, got {raw!r}")
    if value < 0:
        raise ConfigError(f"{name} must not be negative")
    return value


def _env_page_size(name: str, default: int) -> int:
    raw = os.environ.get(name, "")
    if not raw:
        return default
    try:
        value = int(raw)
    except ValueError:
        raise ConfigError(f"{name} must be an integer, got {raw!r}")
    if not 1 <= value <= MAX_PAGE_SIZE:
        raise ConfigError(f"{name} must be between 1 and {MAX_PAGE_SIZE}")
    return value


def _branch_policy(default_branch_only: bool) -> BranchPolicy:
    if default_branch_only:
        return BranchPolicy.DEFAULT_BRANCH
    raw = os.environ.get("GH_COMMITTERS_BRANCH_POLICY", "").strip().lower()
    if not raw:
        return BranchPolicy.ALL_BRANCHES
    try:
        return BranchPolicy(raw)
    except ValueError:
        choices = ", ".join(p.value for p in BranchPolicy)
        raise ConfigError(f"GH_COMMITTERS_BRANCH_POLICY must be one of: {choices}")


def resolve_token(flag_token: Optional[str] = None) -> str:
    """Token from the flag, else GH_TOKEN, else GITHUB_TOKEN."""
    raw = flag_token or ""
    if not raw:
        for name in TOKEN_ENV_VARS:
            raw = os.environ.get(name, "")
            if raw:
                break
    if not raw:
        raise ConfigError(
            "GitHub token missing. Please generate one and set it through the "
            "--token flag or the GH_TOKEN environment variable"
        )
    return resolve_secret(raw)


def load_config(
    handle: str,
    *,
    token: Optional[str] = None,
    print_source: bool = False,
    show_all: bool = False,
    default_branch_only: bool = False,
    page_delay_s: Optional[float] = None,
    timeout_s: Optional[float] = None,
    log_level: Optional[str] = None,
) -> SearchConfig:
    load_dotenv(find_dotenv(usecwd=True))

    if not handle:
        raise ConfigError("A GitHub username is required (--user)")

    github = GitHubConfig(
        token=resolve_token(token),
        api_base_url=os.environ.get("GITHUB_API_BASE_URL", "https://api.github.com").rstrip("/"),
        graphql_url=os.environ.get("GITHUB_GRAPHQL_URL", ""),
        request_timeout_s=_env_float("GH_COMMITTERS_REQUEST_TIMEOUT", 30.0),
    )

    if page_delay_s is None:
        page_delay_s = _env_float("GH_COMMITTERS_PAGE_DELAY", 0.5)
    elif page_delay_s < 0:
        raise ConfigError("--delay must not be negative")
    if timeout_s is None:
        timeout_s = _env_float("GH_COMMITTERS_TIMEOUT", None)
    elif timeout_s <= 0:
        raise ConfigError("--timeout must be positive")

    traversal = TraversalConfig(
        repo_page_size=_env_page_size("GH_COMMITTERS_REPO_PAGE_SIZE", 50),
        branch_page_size=_env_page_size("GH_COMMITTERS_BRANCH_PAGE_SIZE", 10),
        commit_page_size=_env_page_size("GH_COMMITTERS_COMMIT_PAGE_SIZE", 50),
        page_delay_s=page_delay_s,
        branch_policy=_branch_policy(default_branch_only),
        timeout_s=timeout_s,
    )

    return SearchConfig(
        handle=handle,
        github=github,
        traversal=traversal,
        print_source=print_source,
        show_all=show_all,
        log_level=(log_level or os.environ.get("LOG_LEVEL", "INFO")).upper(),
    )
