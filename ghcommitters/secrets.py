"""Resolve the GitHub token when it is stored in a cloud secret manager.

Supported values:
  - "aws-secret://secret-name"                 -> AWS Secrets Manager
  - "aws-secret://secret-name#json_key"        -> one key of a JSON secret
  - "gcp-secret://name"                        -> GCP Secret Manager, latest version
  - "gcp-secret://projects/P/secrets/N/versions/V"
  - anything else                              -> used as the token itself

The cloud SDKs are optional (``pip install gh-committers[aws]`` / ``[gcp]``)
and only imported when a reference needs them.
"""

from __future__ import annotations

import json
import logging
import os

import requests

from ghcommitters.errors import ConfigError

logger = logging.getLogger("ghcommitters.secrets")

_AWS_PREFIX = "aws-secret://"
_GCP_PREFIX = "gcp-secret://"

GCP_METADATA_PROJECT_URL = "http://metadata.google.internal/computeMetadata/v1/project/project-id"


def resolve_secret(value: str) -> str:
    if value.startswith(_AWS_PREFIX):
        return _resolve_aws_secret(value[len(_AWS_PREFIX):])
    if value.startswith(_GCP_PREFIX):
        return _resolve_gcp_secret(value[len(_GCP_PREFIX):])
    return value


def _resolve_aws_secret(ref: str) -> str:
    """AWS Secrets Manager value for "name" or one key of it for "name#key"."""
    try:
        import boto3
    except ImportError:
        raise ConfigError("aws-secret:// tokens need boto3 (pip install gh-committers[aws])")

    secret_name, _, json_key = ref.partition("#")
    region = os.environ.get("AWS_REGION", "us-east-1")
    logger.debug("Reading token from AWS secret %s", secret_name)

    try:
        client = boto3.client("secretsmanager", region_name=region)
        secret_string = client.get_secret_value(SecretId=secret_name)["SecretString"]
    except Exception as exc:
        raise ConfigError(f"Cannot read AWS secret {secret_name}: {exc}") from exc

    if json_key:
        try:
            return str(json.loads(secret_string)[json_key])
        except (ValueError, KeyError):
            raise ConfigError(f"AWS secret {secret_name} has no JSON key {json_key!r}")
    return secret_string


def _resolve_gcp_secret(ref: str) -> str:
    """Latest version of a GCP secret, or the exact version for a full path."""
    try:
        from google.cloud import secretmanager
    except ImportError:
        raise ConfigError(
            "gcp-secret:// tokens need google-cloud-secret-manager (pip install gh-committers[gcp])"
        )

    if ref.startswith("projects/"):
        name = ref
    else:
        project = os.environ.get("GCP_PROJECT_ID", "") or _gcp_project_from_metadata()
        name = f"projects/{project}/secrets/{ref}/versions/latest"
    logger.debug("Reading token from GCP secret %s", name)

    try:
        client = secretmanager.SecretManagerServiceClient()
        response = client.access_secret_version(request={"name": name})
        return response.payload.data.decode("UTF-8")
    except Exception as exc:
        raise ConfigError(f"Cannot read GCP secret {name}: {exc}") from exc


def _gcp_project_from_metadata() -> str:
    """Project id from the metadata server (Cloud Run, GCE)."""
    try:
        resp = requests.get(
            GCP_METADATA_PROJECT_URL,
            headers={"Metadata-Flavor": "Google"},
            timeout=2,
        )
        resp.raise_for_status()
    except requests.RequestException:
        raise ConfigError("Cannot determine GCP project ID. Set GCP_PROJECT_ID env var.")
    return resp.text
