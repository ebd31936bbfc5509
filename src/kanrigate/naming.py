"""Object naming convention for permission bindings.

A binding's name is the only record of which user holds which permission in
which scope, so encoding must stay injective. Segments that are empty or
contain the separator are rejected instead of escaped.
"""

from __future__ import annotations

from typing import Optional

from .const import CLUSTER_TEMPLATE_FAMILY, NAMESPACED_TEMPLATE_FAMILY, SEPARATOR
from .errors import InvalidName


def template_family(namespace: Optional[str]) -> str:
    """Return the role template family for a namespace, or cluster scope when None."""
    return CLUSTER_TEMPLATE_FAMILY if namespace is None else NAMESPACED_TEMPLATE_FAMILY


def validate_segment(kind: str, value: str) -> str:
    if not value:
        raise InvalidName(f"{kind} must not be empty")
    if SEPARATOR in value:
        raise InvalidName(f"{kind} '{value}' must not contain '{SEPARATOR}'")
    return value


def encode_role_ref_name(permission: str, namespace: Optional[str] = None) -> str:
    """Return the name of the template ClusterRole for a permission."""
    validate_segment("permission", permission)
    return SEPARATOR.join([template_family(namespace), permission])


def encode_binding_name(
    username: str, permission: str, namespace: Optional[str] = None
) -> str:
    """Return the RoleBinding (or ClusterRoleBinding) name for a grant."""
    validate_segment("username", username)
    segments = [username, encode_role_ref_name(permission, namespace)]
    if namespace is not None:
        segments.append(validate_segment("namespace", namespace))
    return SEPARATOR.join(segments)


def decode_permission_from_role_ref_name(role_ref_name: str) -> str:
    """Return the permission encoded in a role reference name.

    Names outside the convention are returned unchanged.
    """
    parts = role_ref_name.split(SEPARATOR)
    if len(parts) > 1:
        return parts[1]
    return role_ref_name
