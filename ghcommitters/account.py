"""Resolve a GitHub login to the node id used to filter commit history."""

from __future__ import annotations

import logging

import requests

from ghcommitters.errors import AccountLookupError, AuthError
from ghcommitters.models import Account

logger = logging.getLogger("ghcommitters.account")


def resolve_account(
    session: requests.Session,
    handle: str,
    *,
    api_base_url: str = "https://api.github.com",
    timeout: float = 30.0,
) -> Account:
    url = f"{api_base_url.rstrip('/')}/users/{handle}"
    try:
        resp = session.get(url, timeout=timeout)
    except requests.RequestException as exc:
        raise AccountLookupError(f"Error fetching user ID: {exc}") from exc

    if resp.status_code == 401:
        raise AuthError("Your GitHub token seems to be invalid.")
    if resp.status_code == 404:
        raise AccountLookupError(f"GitHub account {handle!r} not found")
    if resp.status_code >= 400:
        raise AccountLookupError(
            f"Error fetching user ID: HTTP {resp.status_code}: {resp.text[:200]}"
        )

    try:
        body = resp.json()
    except ValueError as exc:
        raise AccountLookupError(f"Error parsing GitHub API response: {exc}") from exc

    node_id = body.get("node_id") if isinstance(body, dict) else None
    if not node_id:
        raise AccountLookupError(f"GitHub API response for {handle!r} has no node_id")

    logger.info("Resolved %s to %s", handle, node_id, extra={"account": handle})
    return Account(handle=handle, opaque_id=node_id)
