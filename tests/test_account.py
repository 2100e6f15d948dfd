from __future__ import annotations

import pytest
import requests

from ghcommitters.account import resolve_account
from ghcommitters.errors import AccountLookupError, AuthError
from ghcommitters.models import Account
from tests.fakes import FakeResponse, FakeSession


def test_resolves_node_id() -> None:
    session = FakeSession(FakeResponse(json_data={"login": "ada", "node_id": "U_1"}))
    account = resolve_account(session, "ada", api_base_url="https://api.example/", timeout=3)

    assert account == Account(handle="ada", opaque_id="U_1")
    method, url, kwargs = session.requests[0]
    assert (method, url) == ("GET", "https://api.example/users/ada")
    assert kwargs["timeout"] == 3


def test_unauthorized_is_auth_error() -> None:
    session = FakeSession(FakeResponse(status_code=401, json_data={"message": "Bad credentials"}))
    with pytest.raises(AuthError):
        resolve_account(session, "ada")


def test_unknown_handle_is_lookup_error() -> None:
    session = FakeSession(FakeResponse(status_code=404, json_data={"message": "Not Found"}))
    with pytest.raises(AccountLookupError, match="not found"):
        resolve_account(session, "nobody")


def test_lookup_error_is_a_lookup_error() -> None:
    session = FakeSession(FakeResponse(status_code=404))
    with pytest.raises(LookupError):
        resolve_account(session, "nobody")


def test_transport_failure_is_lookup_error() -> None:
    session = FakeSession(requests.Timeout("timed out"))
    with pytest.raises(AccountLookupError, match="timed out"):
        resolve_account(session, "ada")


def test_undecodable_body_is_lookup_error() -> None:
    session = FakeSession(FakeResponse(text="not json"))
    with pytest.raises(AccountLookupError):
        resolve_account(session, "ada")


def test_missing_node_id_is_lookup_error() -> None:
    session = FakeSession(FakeResponse(json_data={"login": "ada"}))
    with pytest.raises(AccountLookupError):
        resolve_account(session, "ada")
