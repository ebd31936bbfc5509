"""Kubeconfig generation from a user's token Secret."""

from __future__ import annotations

import base64
import binascii
from typing import Any, Dict

import yaml

from .cluster import KubeCluster
from .errors import EncodingError, MalformedCredential, NotFound
from .provisioning import find_credentials


def context_name(username: str, namespace: str, cluster_name: str) -> str:
    return f"{username}-{namespace}@{cluster_name}"


def build_kubeconfig(
    username: str,
    namespace: str,
    cluster_name: str,
    control_plane_address: str,
    token: str,
    ca_cert: bytes,
) -> Dict[str, Any]:
    context = context_name(username, namespace, cluster_name)
    return {
        "apiVersion": "v1",
        "kind": "Config",
        "clusters": [
            {
                "name": cluster_name,
                "cluster": {
                    "certificate-authority-data": base64.b64encode(ca_cert).decode("ascii"),
                    "server": control_plane_address,
                },
            }
        ],
        "contexts": [
            {
                "name": context,
                "context": {
                    "cluster": cluster_name,
                    "namespace": namespace,
                    "user": username,
                },
            }
        ],
        "current-context": context,
        "users": [
            {
                "name": username,
                "user": {"token": token},
            }
        ],
    }


class KubeconfigDumper(yaml.SafeDumper):
    # Prefer literal block style for multiline strings
    def represent_scalar(self, tag, value, style=None):
        if isinstance(value, str) and "\n" in value:
            style = "|"
        return super().represent_scalar(tag, value, style)


def dump_kubeconfig(document: Dict[str, Any]) -> str:
    return yaml.dump(document, Dumper=KubeconfigDumper, sort_keys=False, default_flow_style=False)


def _payload_field(data: Dict[str, str], key: str, secret_name: str) -> bytes:
    value = data.get(key)
    if value is None:
        raise MalformedCredential(f"Secret '{secret_name}' is missing '{key}'")
    try:
        return base64.b64decode(value, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise MalformedCredential(f"Secret '{secret_name}' has undecodable '{key}'") from exc


class KubeconfigGenerator:
    """Renders a kubeconfig for a user from their token Secret."""

    def __init__(self, cluster: KubeCluster, credential_namespace: str) -> None:
        self.cluster = cluster
        self.credential_namespace = credential_namespace

    async def generate(
        self,
        username: str,
        namespace: str,
        cluster_name: str,
        control_plane_address: str,
    ) -> Dict[str, Any]:
        secrets = await find_credentials(self.cluster, self.credential_namespace, username)
        if not secrets:
            raise NotFound(f"No token Secret found for user '{username}'")

        secret = secrets[0]
        secret_name = secret.metadata.name
        # Secret data arrives base64-encoded from the API server
        data = secret.data or {}
        token_bytes = _payload_field(data, "token", secret_name)
        ca_cert = _payload_field(data, "ca.crt", secret_name)

        try:
            token = token_bytes.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise EncodingError(f"Secret '{secret_name}' token is not valid UTF-8") from exc

        return build_kubeconfig(
            username, namespace, cluster_name, control_plane_address, token, ca_cert
        )
