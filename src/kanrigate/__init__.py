"""Per-user Kubernetes permission provisioning."""

__version__ = "0.1.0"
