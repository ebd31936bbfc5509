"""Async access to the cluster resources kanrigate manages.

Calls to the blocking kubernetes client run in a worker thread so that a
request only ever suspends its own task. Failures are translated into the
kanrigate error types; nothing here retries or caches.
"""

from __future__ import annotations

import asyncio
from typing import Any, Callable, List

import urllib3
from kubernetes import client, config
from kubernetes.client import ApiException

from .errors import AlreadyExists, KanriGateError, NotFound, RemoteUnavailable


def translate_api_exception(exc: ApiException, description: str) -> KanriGateError:
    if exc.status == 404:
        return NotFound(f"{description}: not found", status=exc.status)
    if exc.status == 409:
        return AlreadyExists(f"{description}: already exists", status=exc.status)
    return RemoteUnavailable(f"{description}: {exc.reason}", status=exc.status)


def load_kube_client_config(logger) -> None:
    """Configure the kubernetes client, preferring in-cluster credentials."""
    try:
        config.load_incluster_config()
        logger.info("Using in-cluster Kubernetes configuration.")
    except config.ConfigException:
        try:
            config.load_kube_config()
            logger.info("Using local kubeconfig.")
        except config.ConfigException as e:
            raise RemoteUnavailable(f"Could not configure Kubernetes client: {e}") from e


class KubeCluster:
    """Typed list/create/delete operations over CoreV1Api and RbacAuthorizationV1Api."""

    def __init__(
        self,
        core_v1_api: client.CoreV1Api | None = None,
        rbac_v1_api: client.RbacAuthorizationV1Api | None = None,
    ) -> None:
        self.core_v1 = core_v1_api if core_v1_api is not None else client.CoreV1Api()
        self.rbac_v1 = rbac_v1_api if rbac_v1_api is not None else client.RbacAuthorizationV1Api()

    async def _call(self, description: str, func: Callable[..., Any], **kwargs: Any) -> Any:
        try:
            return await asyncio.to_thread(func, **kwargs)
        except ApiException as exc:
            raise translate_api_exception(exc, description) from exc
        except urllib3.exceptions.HTTPError as exc:
            raise RemoteUnavailable(f"{description}: {exc}") from exc

    # Namespaces

    async def list_namespaces(self) -> List[client.V1Namespace]:
        result = await self._call("list namespaces", self.core_v1.list_namespace)
        return list(result.items)

    # ServiceAccounts

    async def list_service_accounts(self, namespace: str) -> List[client.V1ServiceAccount]:
        result = await self._call(
            f"list ServiceAccounts in '{namespace}'",
            self.core_v1.list_namespaced_service_account,
            namespace=namespace,
        )
        return list(result.items)

    async def create_service_account(self, namespace: str, body: client.V1ServiceAccount) -> None:
        await self._call(
            f"ServiceAccount '{body.metadata.name}' in '{namespace}'",
            self.core_v1.create_namespaced_service_account,
            namespace=namespace,
            body=body,
        )

    async def delete_service_account(self, name: str, namespace: str) -> None:
        await self._call(
            f"ServiceAccount '{name}' in '{namespace}'",
            self.core_v1.delete_namespaced_service_account,
            name=name,
            namespace=namespace,
        )

    # Secrets

    async def list_secrets(self, namespace: str) -> List[client.V1Secret]:
        result = await self._call(
            f"list Secrets in '{namespace}'",
            self.core_v1.list_namespaced_secret,
            namespace=namespace,
        )
        return list(result.items)

    async def create_secret(self, namespace: str, body: client.V1Secret) -> None:
        await self._call(
            f"Secret '{body.metadata.name}' in '{namespace}'",
            self.core_v1.create_namespaced_secret,
            namespace=namespace,
            body=body,
        )

    async def delete_secret(self, name: str, namespace: str) -> None:
        await self._call(
            f"Secret '{name}' in '{namespace}'",
            self.core_v1.delete_namespaced_secret,
            name=name,
            namespace=namespace,
        )

    # RoleBindings

    async def list_role_bindings(self, namespace: str) -> List[client.V1RoleBinding]:
        result = await self._call(
            f"list RoleBindings in '{namespace}'",
            self.rbac_v1.list_namespaced_role_binding,
            namespace=namespace,
        )
        return list(result.items)

    async def create_role_binding(self, namespace: str, body: client.V1RoleBinding) -> None:
        await self._call(
            f"RoleBinding '{body.metadata.name}' in '{namespace}'",
            self.rbac_v1.create_namespaced_role_binding,
            namespace=namespace,
            body=body,
        )

    async def delete_role_binding(self, name: str, namespace: str) -> None:
        await self._call(
            f"RoleBinding '{name}' in '{namespace}'",
            self.rbac_v1.delete_namespaced_role_binding,
            name=name,
            namespace=namespace,
        )

    # ClusterRoleBindings

    async def list_cluster_role_bindings(self) -> List[client.V1ClusterRoleBinding]:
        result = await self._call(
            "list ClusterRoleBindings", self.rbac_v1.list_cluster_role_binding
        )
        return list(result.items)

    async def create_cluster_role_binding(self, body: client.V1ClusterRoleBinding) -> None:
        await self._call(
            f"ClusterRoleBinding '{body.metadata.name}'",
            self.rbac_v1.create_cluster_role_binding,
            body=body,
        )

    async def delete_cluster_role_binding(self, name: str) -> None:
        await self._call(
            f"ClusterRoleBinding '{name}'",
            self.rbac_v1.delete_cluster_role_binding,
            name=name,
        )
