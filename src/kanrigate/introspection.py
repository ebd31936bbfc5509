"""Answering "what can this user do" by scanning bindings."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from .cluster import KubeCluster
from .const import DEFAULT_CLUSTER_TEMPLATES, DEFAULT_NAMESPACED_TEMPLATES
from .errors import KanriGateError
from .naming import decode_permission_from_role_ref_name
from .resources import has_subject


@dataclass
class PermissionScan:
    """Permissions found per namespace, plus the namespaces that could not be read."""

    permissions: Dict[str, Dict[str, bool]] = field(default_factory=dict)
    failed_namespaces: List[str] = field(default_factory=list)

    @property
    def complete(self) -> bool:
        return not self.failed_namespaces


class IntrospectionService:
    """Read-only views of namespaces, identities and the permissions bound to them."""

    def __init__(
        self,
        cluster: KubeCluster,
        credential_namespace: str,
        namespaced_templates: Optional[List[str]] = None,
        cluster_templates: Optional[List[str]] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self.cluster = cluster
        self.credential_namespace = credential_namespace
        self.namespaced_templates = list(namespaced_templates or DEFAULT_NAMESPACED_TEMPLATES)
        self.cluster_templates = list(cluster_templates or DEFAULT_CLUSTER_TEMPLATES)
        self.logger = logger or logging.getLogger(__name__)

    def list_templates(self) -> Dict[str, List[str]]:
        return {
            "namespaced": list(self.namespaced_templates),
            "cluster": list(self.cluster_templates),
        }

    async def list_namespaces(self) -> List[str]:
        return [ns.metadata.name for ns in await self.cluster.list_namespaces()]

    async def list_identities(self) -> List[str]:
        accounts = await self.cluster.list_service_accounts(self.credential_namespace)
        return [sa.metadata.name for sa in accounts]

    async def _namespace_permissions(self, namespace: str, username: str) -> Dict[str, bool]:
        found: Dict[str, bool] = {}
        for binding in await self.cluster.list_role_bindings(namespace):
            if has_subject(binding, username):
                found[decode_permission_from_role_ref_name(binding.role_ref.name)] = True
        return found

    async def list_namespaced_permissions(self, username: str) -> PermissionScan:
        """Collect username's namespaced permissions across every namespace.

        Namespaces whose bindings cannot be listed are reported in
        failed_namespaces rather than aborting the scan.
        """
        namespaces = await self.list_namespaces()
        results = await asyncio.gather(
            *(self._namespace_permissions(ns, username) for ns in namespaces),
            return_exceptions=True,
        )

        scan = PermissionScan()
        for namespace, result in zip(namespaces, results):
            if isinstance(result, KanriGateError):
                self.logger.warning(
                    "Skipping namespace '%s' while scanning '%s': %s", namespace, username, result
                )
                scan.failed_namespaces.append(namespace)
            elif isinstance(result, BaseException):
                raise result
            elif result:
                scan.permissions[namespace] = result
        return scan

    async def list_cluster_permissions(self, username: str) -> Dict[str, bool]:
        permissions: Dict[str, bool] = {}
        for binding in await self.cluster.list_cluster_role_bindings():
            if has_subject(binding, username):
                permissions[decode_permission_from_role_ref_name(binding.role_ref.name)] = True
        return permissions
