"""Creation and deletion of identities, credentials and permission bindings."""

from __future__ import annotations

import logging
from typing import List, Optional

from kubernetes import client

from .cluster import KubeCluster
from .naming import encode_binding_name
from .resources import (
    annotated_username,
    build_cluster_rolebinding_body,
    build_rolebinding_body,
    build_service_account_body,
    build_token_secret_body,
)


async def find_credentials(
    cluster: KubeCluster, namespace: str, username: str
) -> List[client.V1Secret]:
    """Return the Secrets in namespace annotated as belonging to username."""
    secrets = await cluster.list_secrets(namespace)
    return [secret for secret in secrets if annotated_username(secret) == username]


class ProvisioningService:
    """Provisions ServiceAccounts, token Secrets and RBAC bindings for users.

    Every create or delete is a single remote call. Existence checks are left
    to the API server, so AlreadyExists and NotFound reach the caller as-is.
    """

    def __init__(
        self,
        cluster: KubeCluster,
        credential_namespace: str,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self.cluster = cluster
        self.credential_namespace = credential_namespace
        self.logger = logger or logging.getLogger(__name__)

    async def create_identity(self, username: str) -> str:
        body = build_service_account_body(username, self.credential_namespace)
        await self.cluster.create_service_account(self.credential_namespace, body)
        self.logger.info(
            "ServiceAccount '%s' created in '%s'", username, self.credential_namespace
        )
        return username

    async def delete_identity(self, username: str) -> str:
        """Delete the ServiceAccount only; bindings and credentials are kept."""
        await self.cluster.delete_service_account(username, self.credential_namespace)
        self.logger.info(
            "Deleted ServiceAccount '%s' in '%s'", username, self.credential_namespace
        )
        return username

    async def ensure_credential(self, username: str) -> str:
        """Return the user's token Secret name, creating the Secret if none exists."""
        existing = await find_credentials(self.cluster, self.credential_namespace, username)
        if existing:
            name = existing[0].metadata.name
            self.logger.info("Token Secret '%s' already exists for '%s'", name, username)
            return name

        body = build_token_secret_body(username, self.credential_namespace)
        await self.cluster.create_secret(self.credential_namespace, body)
        self.logger.info("Token Secret '%s' created for '%s'", body.metadata.name, username)
        return body.metadata.name

    async def revoke_credentials(self, username: str) -> List[str]:
        """Delete every token Secret annotated for username.

        Deletions already performed stay in effect if a later one fails.
        """
        deleted: List[str] = []
        for secret in await find_credentials(self.cluster, self.credential_namespace, username):
            name = secret.metadata.name
            await self.cluster.delete_secret(name, self.credential_namespace)
            self.logger.info("Deleted token Secret '%s' for '%s'", name, username)
            deleted.append(name)
        return deleted

    async def create_binding(
        self, username: str, permission: str, namespace: Optional[str] = None
    ) -> str:
        """Bind username to a permission template in namespace, or cluster-wide when None."""
        if namespace is None:
            crb_body = build_cluster_rolebinding_body(
                username, permission, self.credential_namespace
            )
            await self.cluster.create_cluster_role_binding(crb_body)
            name = crb_body.metadata.name
            self.logger.info("ClusterRoleBinding '%s' created", name)
        else:
            rb_body = build_rolebinding_body(
                username, permission, namespace, self.credential_namespace
            )
            await self.cluster.create_role_binding(namespace, rb_body)
            name = rb_body.metadata.name
            self.logger.info("RoleBinding '%s' created in '%s'", name, namespace)
        return name

    async def delete_binding(
        self, username: str, permission: str, namespace: Optional[str] = None
    ) -> str:
        name = encode_binding_name(username, permission, namespace)
        if namespace is None:
            await self.cluster.delete_cluster_role_binding(name)
            self.logger.info("Deleted ClusterRoleBinding '%s'", name)
        else:
            await self.cluster.delete_role_binding(name, namespace)
            self.logger.info("Deleted RoleBinding '%s' in '%s'", name, namespace)
        return name
