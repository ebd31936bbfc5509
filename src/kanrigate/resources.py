"""Resource bodies for identities, credentials and permission bindings."""

from __future__ import annotations

from typing import Optional

from kubernetes import client

from .const import (
    RBAC_API_GROUP,
    SA_NAME_ANNOTATION,
    SA_TOKEN_SECRET_TYPE,
    TOKEN_SECRET_SUFFIX,
)
from .naming import encode_binding_name, encode_role_ref_name


def token_secret_name(username: str) -> str:
    return f"{username}{TOKEN_SECRET_SUFFIX}"


def build_service_account_body(username: str, namespace: str) -> client.V1ServiceAccount:
    return client.V1ServiceAccount(
        metadata=client.V1ObjectMeta(name=username, namespace=namespace)
    )


def build_token_secret_body(username: str, namespace: str) -> client.V1Secret:
    """Create a token Secret manifest; the cluster fills in its payload."""

    return client.V1Secret(
        metadata=client.V1ObjectMeta(
            name=token_secret_name(username),
            namespace=namespace,
            annotations={SA_NAME_ANNOTATION: username},
        ),
        type=SA_TOKEN_SECRET_TYPE,
    )


def _role_ref(permission: str, namespace: Optional[str]) -> client.V1RoleRef:
    return client.V1RoleRef(
        api_group=RBAC_API_GROUP,
        kind="ClusterRole",
        name=encode_role_ref_name(permission, namespace),
    )


def _subjects(username: str, credential_namespace: str) -> list:
    # The identity lives once in the credential namespace and is referenced from everywhere
    return [
        client.RbacV1Subject(
            kind="ServiceAccount",
            name=username,
            namespace=credential_namespace,
        )
    ]


def build_rolebinding_body(
    username: str, permission: str, namespace: str, credential_namespace: str
) -> client.V1RoleBinding:
    """Create a RoleBinding manifest binding the user to a namespaced template."""

    return client.V1RoleBinding(
        metadata=client.V1ObjectMeta(
            name=encode_binding_name(username, permission, namespace),
            namespace=namespace,
        ),
        role_ref=_role_ref(permission, namespace),
        subjects=_subjects(username, credential_namespace),
    )


def build_cluster_rolebinding_body(
    username: str, permission: str, credential_namespace: str
) -> client.V1ClusterRoleBinding:
    """Create a ClusterRoleBinding manifest binding the user to a cluster template."""

    return client.V1ClusterRoleBinding(
        metadata=client.V1ObjectMeta(name=encode_binding_name(username, permission)),
        role_ref=_role_ref(permission, None),
        subjects=_subjects(username, credential_namespace),
    )


def annotated_username(obj) -> Optional[str]:
    annotations = obj.metadata.annotations or {}
    return annotations.get(SA_NAME_ANNOTATION)


def has_subject(binding, username: str) -> bool:
    return any(subject.name == username for subject in binding.subjects or [])
