from __future__ import annotations

import json
import sys
import types

import pytest
import requests

from ghcommitters import secrets as secrets_module
from ghcommitters.errors import ConfigError
from ghcommitters.secrets import resolve_secret


class _FakeSecretsManager:
    def __init__(self, secret_string: str) -> None:
        self.secret_string = secret_string
        self.requested: list[str] = []

    def get_secret_value(self, SecretId: str) -> dict:
        self.requested.append(SecretId)
        return {"SecretString": self.secret_string}


def _install_boto3(monkeypatch: pytest.MonkeyPatch, client: _FakeSecretsManager) -> list[tuple]:
    created: list[tuple] = []

    def make_client(service: str, region_name: str) -> _FakeSecretsManager:
        created.append((service, region_name))
        return client

    monkeypatch.setitem(sys.modules, "boto3", types.SimpleNamespace(client=make_client))
    return created


def test_plain_value_is_returned_unchanged() -> None:
    assert resolve_secret("ghp_abc123") == "ghp_abc123"


def test_aws_secret_reference(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("AWS_REGION", "eu-west-1")
    client = _FakeSecretsManager("ghp_from_aws")
    created = _install_boto3(monkeypatch, client)

    assert resolve_secret("aws-secret://github/token") == "ghp_from_aws"
    assert created == [("secretsmanager", "eu-west-1")]
    assert client.requested == ["github/token"]


def test_aws_secret_json_key(monkeypatch: pytest.MonkeyPatch) -> None:
    client = _FakeSecretsManager(json.dumps({"gh": "ghp_json"}))
    _install_boto3(monkeypatch, client)
    assert resolve_secret("aws-secret://tokens#gh") == "ghp_json"


def test_aws_secret_missing_json_key(monkeypatch: pytest.MonkeyPatch) -> None:
    _install_boto3(monkeypatch, _FakeSecretsManager(json.dumps({"other": "x"})))
    with pytest.raises(ConfigError):
        resolve_secret("aws-secret://tokens#gh")


def test_aws_secret_without_boto3(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setitem(sys.modules, "boto3", None)
    with pytest.raises(ConfigError, match="boto3"):
        resolve_secret("aws-secret://github/token")


class _FailingSecretsManager:
    def get_secret_value(self, SecretId: str) -> dict:
        raise RuntimeError("Unable to locate credentials")


def test_aws_sdk_failure_is_config_error(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setitem(
        sys.modules,
        "boto3",
        types.SimpleNamespace(client=lambda service, region_name: _FailingSecretsManager()),
    )
    with pytest.raises(ConfigError, match="Unable to locate credentials") as excinfo:
        resolve_secret("aws-secret://github/token")
    assert isinstance(excinfo.value.__cause__, RuntimeError)


def test_aws_secret_without_secret_string(monkeypatch: pytest.MonkeyPatch) -> None:
    class BinaryOnly:
        def get_secret_value(self, SecretId: str) -> dict:
            return {"SecretBinary": b"\x00"}

    monkeypatch.setitem(sys.modules, "boto3", types.SimpleNamespace(client=lambda service, region_name: BinaryOnly()))
    with pytest.raises(ConfigError):
        resolve_secret("aws-secret://github/token")


class _FakeSecretManagerClient:
    def __init__(self, requested: list[str], error: Exception | None = None) -> None:
        self.requested = requested
        self.error = error

    def access_secret_version(self, request: dict) -> types.SimpleNamespace:
        self.requested.append(request["name"])
        if self.error is not None:
            raise self.error
        return types.SimpleNamespace(payload=types.SimpleNamespace(data=b"ghp_from_gcp"))


def _install_secretmanager(monkeypatch: pytest.MonkeyPatch, error: Exception | None = None) -> list[str]:
    requested: list[str] = []
    secretmanager = types.ModuleType("google.cloud.secretmanager")
    secretmanager.SecretManagerServiceClient = lambda: _FakeSecretManagerClient(requested, error)
    google = types.ModuleType("google")
    cloud = types.ModuleType("google.cloud")
    cloud.secretmanager = secretmanager
    google.cloud = cloud
    monkeypatch.setitem(sys.modules, "google", google)
    monkeypatch.setitem(sys.modules, "google.cloud", cloud)
    monkeypatch.setitem(sys.modules, "google.cloud.secretmanager", secretmanager)
    return requested


def test_gcp_full_path_reference(monkeypatch: pytest.MonkeyPatch) -> None:
    requested = _install_secretmanager(monkeypatch)
    ref = "gcp-secret://projects/p1/secrets/gh-token/versions/3"
    assert resolve_secret(ref) == "ghp_from_gcp"
    assert requested == ["projects/p1/secrets/gh-token/versions/3"]


def test_gcp_short_name_uses_project_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("GCP_PROJECT_ID", "p2")
    requested = _install_secretmanager(monkeypatch)
    assert resolve_secret("gcp-secret://gh-token") == "ghp_from_gcp"
    assert requested == ["projects/p2/secrets/gh-token/versions/latest"]


def test_gcp_short_name_falls_back_to_metadata_server(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("GCP_PROJECT_ID", raising=False)
    requested = _install_secretmanager(monkeypatch)
    seen_urls: list[str] = []

    class MetadataResponse:
        text = "p3"

        def raise_for_status(self) -> None:
            return None

    def fake_get(url: str, **kwargs) -> MetadataResponse:
        seen_urls.append(url)
        assert kwargs["headers"] == {"Metadata-Flavor": "Google"}
        return MetadataResponse()

    monkeypatch.setattr(secrets_module.requests, "get", fake_get)
    assert resolve_secret("gcp-secret://gh-token") == "ghp_from_gcp"
    assert seen_urls == [secrets_module.GCP_METADATA_PROJECT_URL]
    assert requested == ["projects/p3/secrets/gh-token/versions/latest"]


def test_gcp_project_unknown_is_config_error(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("GCP_PROJECT_ID", raising=False)
    requested = _install_secretmanager(monkeypatch)

    def unreachable(url: str, **kwargs):
        raise requests.ConnectionError("metadata.google.internal unreachable")

    monkeypatch.setattr(secrets_module.requests, "get", unreachable)
    with pytest.raises(ConfigError, match="GCP_PROJECT_ID"):
        resolve_secret("gcp-secret://gh-token")
    assert requested == []


def test_gcp_sdk_failure_is_config_error(monkeypatch: pytest.MonkeyPatch) -> None:
    _install_secretmanager(monkeypatch, error=PermissionError("403 Permission denied on secret"))
    with pytest.raises(ConfigError, match="Permission denied"):
        resolve_secret("gcp-secret://projects/p1/secrets/gh-token/versions/latest")


def test_gcp_secret_without_sdk(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setitem(sys.modules, "google", types.ModuleType("google"))
    monkeypatch.setitem(sys.modules, "google.cloud.secretmanager", None)
    cloud = types.ModuleType("google.cloud")
    cloud.__path__ = []
    monkeypatch.setitem(sys.modules, "google.cloud", cloud)
    with pytest.raises(ConfigError, match="google-cloud-secret-manager"):
        resolve_secret("gcp-secret://projects/p1/secrets/gh-token/versions/latest")
