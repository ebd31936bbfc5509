"""
This file contains shared fixtures for all tests.

The Kubernetes API is replaced by an in-memory fake that implements the
CoreV1Api and RbacAuthorizationV1Api methods kanrigate calls, using real
kubernetes client models and ApiException statuses.
"""

import base64
from types import SimpleNamespace
from typing import Dict, List, Optional, Set, Tuple
from unittest.mock import MagicMock

import pytest
from kubernetes import client
from kubernetes.client import ApiException

from kanrigate.cluster import KubeCluster
from kanrigate.const import SA_NAME_ANNOTATION, SA_TOKEN_SECRET_TYPE
from kanrigate.introspection import IntrospectionService
from kanrigate.kubeconfig import KubeconfigGenerator
from kanrigate.provisioning import ProvisioningService

CREDENTIAL_NAMESPACE = "kanrigate"

Key = Tuple[str, Optional[str], str]


class FakeClusterState:
    """Objects keyed by (kind, namespace, name), shared by both fake APIs."""

    def __init__(self) -> None:
        self.objects: Dict[Key, object] = {}
        self.namespaces: List[str] = ["default", "kube-system", CREDENTIAL_NAMESPACE]
        self.unreadable_namespaces: Set[str] = set()
        self.undeletable_secrets: Set[str] = set()
        self.mutations: List[Tuple[str, Key]] = []

    def items(self, kind: str, namespace: Optional[str] = None) -> List[object]:
        return [
            obj
            for (k, ns, _), obj in self.objects.items()
            if k == kind and ns == namespace
        ]

    def list(self, kind: str, namespace: Optional[str] = None) -> SimpleNamespace:
        return SimpleNamespace(items=self.items(kind, namespace))

    def create(self, kind: str, namespace: Optional[str], body) -> object:
        key = (kind, namespace, body.metadata.name)
        if key in self.objects:
            raise ApiException(status=409, reason="Conflict")
        self.objects[key] = body
        self.mutations.append(("create", key))
        return body

    def delete(self, kind: str, namespace: Optional[str], name: str) -> None:
        key = (kind, namespace, name)
        if key not in self.objects:
            raise ApiException(status=404, reason="Not Found")
        del self.objects[key]
        self.mutations.append(("delete", key))

    def has(self, kind: str, namespace: Optional[str], name: str) -> bool:
        return (kind, namespace, name) in self.objects

    def add_token_secret(
        self,
        name: str,
        username: str,
        data: Optional[Dict[str, bytes]] = None,
        namespace: str = CREDENTIAL_NAMESPACE,
    ) -> client.V1Secret:
        """Store a Secret the way the API server returns it, with base64 data."""
        encoded = None
        if data is not None:
            encoded = {k: base64.b64encode(v).decode("ascii") for k, v in data.items()}
        secret = client.V1Secret(
            metadata=client.V1ObjectMeta(
                name=name,
                namespace=namespace,
                annotations={SA_NAME_ANNOTATION: username},
            ),
            type=SA_TOKEN_SECRET_TYPE,
            data=encoded,
        )
        self.objects[("Secret", namespace, name)] = secret
        return secret

    def add_binding(
        self,
        name: str,
        role_ref_name: str,
        subject_names: List[str],
        namespace: Optional[str] = None,
    ) -> None:
        subjects = [
            client.RbacV1Subject(kind="ServiceAccount", name=subject, namespace=CREDENTIAL_NAMESPACE)
            for subject in subject_names
        ]
        role_ref = client.V1RoleRef(
            api_group="rbac.authorization.k8s.io", kind="ClusterRole", name=role_ref_name
        )
        metadata = client.V1ObjectMeta(name=name, namespace=namespace)
        if namespace is None:
            body = client.V1ClusterRoleBinding(metadata=metadata, role_ref=role_ref, subjects=subjects)
            self.objects[("ClusterRoleBinding", None, name)] = body
        else:
            body = client.V1RoleBinding(metadata=metadata, role_ref=role_ref, subjects=subjects)
            self.objects[("RoleBinding", namespace, name)] = body


class FakeCoreV1Api:
    def __init__(self, state: FakeClusterState) -> None:
        self.state = state

    def list_namespace(self, **kwargs):
        return SimpleNamespace(
            items=[client.V1Namespace(metadata=client.V1ObjectMeta(name=ns)) for ns in self.state.namespaces]
        )

    def list_namespaced_service_account(self, namespace, **kwargs):
        return self.state.list("ServiceAccount", namespace)

    def create_namespaced_service_account(self, namespace, body, **kwargs):
        return self.state.create("ServiceAccount", namespace, body)

    def delete_namespaced_service_account(self, name, namespace, **kwargs):
        self.state.delete("ServiceAccount", namespace, name)

    def list_namespaced_secret(self, namespace, **kwargs):
        return self.state.list("Secret", namespace)

    def create_namespaced_secret(self, namespace, body, **kwargs):
        return self.state.create("Secret", namespace, body)

    def delete_namespaced_secret(self, name, namespace, **kwargs):
        if name in self.state.undeletable_secrets:
            raise ApiException(status=500, reason="Internal Server Error")
        self.state.delete("Secret", namespace, name)


class FakeRbacAuthorizationV1Api:
    def __init__(self, state: FakeClusterState) -> None:
        self.state = state

    def list_namespaced_role_binding(self, namespace, **kwargs):
        if namespace in self.state.unreadable_namespaces:
            raise ApiException(status=403, reason="Forbidden")
        return self.state.list("RoleBinding", namespace)

    def create_namespaced_role_binding(self, namespace, body, **kwargs):
        return self.state.create("RoleBinding", namespace, body)

    def delete_namespaced_role_binding(self, name, namespace, **kwargs):
        self.state.delete("RoleBinding", namespace, name)

    def list_cluster_role_binding(self, **kwargs):
        return self.state.list("ClusterRoleBinding")

    def create_cluster_role_binding(self, body, **kwargs):
        return self.state.create("ClusterRoleBinding", None, body)

    def delete_cluster_role_binding(self, name, **kwargs):
        self.state.delete("ClusterRoleBinding", None, name)


@pytest.fixture
def cluster_state() -> FakeClusterState:
    return FakeClusterState()


@pytest.fixture
def cluster(cluster_state: FakeClusterState) -> KubeCluster:
    return KubeCluster(
        core_v1_api=FakeCoreV1Api(cluster_state),
        rbac_v1_api=FakeRbacAuthorizationV1Api(cluster_state),
    )


@pytest.fixture
def logger() -> MagicMock:
    return MagicMock()


@pytest.fixture
def provisioning(cluster: KubeCluster, logger: MagicMock) -> ProvisioningService:
    return ProvisioningService(cluster, CREDENTIAL_NAMESPACE, logger=logger)


@pytest.fixture
def introspection(cluster: KubeCluster, logger: MagicMock) -> IntrospectionService:
    return IntrospectionService(cluster, CREDENTIAL_NAMESPACE, logger=logger)


@pytest.fixture
def generator(cluster: KubeCluster) -> KubeconfigGenerator:
    return KubeconfigGenerator(cluster, CREDENTIAL_NAMESPACE)
