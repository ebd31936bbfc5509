from typing import Final, List

# Naming convention for template ClusterRoles and the bindings that use them
SEPARATOR: Final[str] = "___"
NAMESPACED_TEMPLATE_FAMILY: Final[str] = "template-namespaced-resources"
CLUSTER_TEMPLATE_FAMILY: Final[str] = "template-cluster-resources"

RBAC_API_GROUP: Final[str] = "rbac.authorization.k8s.io"
RBAC_API_VERSION: Final[str] = f"{RBAC_API_GROUP}/v1"

SA_NAME_ANNOTATION: Final[str] = "kubernetes.io/service-account.name"
SA_TOKEN_SECRET_TYPE: Final[str] = "kubernetes.io/service-account-token"
TOKEN_SECRET_SUFFIX: Final[str] = "-token"

DEFAULT_NAMESPACED_TEMPLATES: Final[List[str]] = ["operation", "monitoring", "developer"]
DEFAULT_CLUSTER_TEMPLATES: Final[List[str]] = ["admin", "read-only", "none"]
