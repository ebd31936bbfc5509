import copy
import os
import re
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

from .const import DEFAULT_CLUSTER_TEMPLATES, DEFAULT_NAMESPACED_TEMPLATES
from .errors import ConfigError

DEFAULT_CONFIG_DIR = Path.home() / ".config" / "kanrigate"
DEFAULT_CONFIG_PATH = DEFAULT_CONFIG_DIR / "config.yml"
SERVICE_ACCOUNT_NAMESPACE_FILE = Path("/var/run/secrets/kubernetes.io/serviceaccount/namespace")
FALLBACK_CREDENTIAL_NAMESPACE = "kanrigate"

ENV_PREFIX = "KANRIGATE_"
ENV_KEYS = ["cluster_name", "control_plane_address", "credential_namespace"]

CLUSTER_NAME_REGEX = re.compile(r"^[a-zA-Z0-9-@]+$")

DEFAULT_CONFIG: Dict[str, Any] = {
    "cluster_name": "kubernetes-admin@kubernetes",
    "control_plane_address": "https://172.17.0.3:6443",
    "credential_namespace": None,
    "templates": {
        "namespaced": list(DEFAULT_NAMESPACED_TEMPLATES),
        "cluster": list(DEFAULT_CLUSTER_TEMPLATES),
    },
}


def current_namespace(namespace_file: Path = SERVICE_ACCOUNT_NAMESPACE_FILE) -> str:
    """Return the namespace this process runs in, or the fallback outside a cluster."""
    try:
        return namespace_file.read_text().strip() or FALLBACK_CREDENTIAL_NAMESPACE
    except OSError:
        return FALLBACK_CREDENTIAL_NAMESPACE


class Configuration:
    def __init__(self, config_data: Dict[str, Any]):
        self._config = copy.deepcopy(config_data)
        # An empty key in the YAML file loads as None
        templates = self._config.get("templates")
        if templates is None:
            templates = {}
        if isinstance(templates, dict):
            for key in ("namespaced", "cluster"):
                if templates.get(key) is None:
                    templates.pop(key, None)
        self._config["templates"] = templates

    @property
    def cluster_name(self) -> str:
        return self._config["cluster_name"]

    @property
    def control_plane_address(self) -> str:
        return self._config["control_plane_address"]

    @property
    def credential_namespace(self) -> str:
        configured_value = self._config.get("credential_namespace")
        return configured_value or current_namespace()

    @property
    def namespaced_templates(self) -> List[str]:
        return list(self._config["templates"].get("namespaced", DEFAULT_NAMESPACED_TEMPLATES))

    @property
    def cluster_templates(self) -> List[str]:
        return list(self._config["templates"].get("cluster", DEFAULT_CLUSTER_TEMPLATES))

    def validate(self) -> "Configuration":
        if not CLUSTER_NAME_REGEX.match(str(self._config.get("cluster_name") or "")):
            raise ConfigError(
                f"Cluster name '{self._config.get('cluster_name')}' contains invalid characters"
            )
        address = str(self._config.get("control_plane_address") or "")
        if not address.startswith(("http://", "https://")):
            raise ConfigError("Control plane address must start with http:// or https://")
        templates = self._config["templates"]
        if not isinstance(templates, dict):
            raise ConfigError("'templates' must be a mapping")
        for key in ("namespaced", "cluster"):
            names = templates.get(key, [])
            if not isinstance(names, list) or not all(isinstance(n, str) for n in names):
                raise ConfigError(f"'templates.{key}' must be a list of template names")
        return self


def get_default_config_path() -> Path:
    return DEFAULT_CONFIG_PATH


def deep_merge(source, destination):
    for key, value in source.items():
        if isinstance(value, dict):
            node = destination.setdefault(key, {})
            deep_merge(value, node)
        else:
            destination[key] = value
    return destination


def _env_overrides(environ) -> Dict[str, Any]:
    overrides = {}
    for key in ENV_KEYS:
        value = environ.get(f"{ENV_PREFIX}{key.upper()}")
        if value:
            overrides[key] = value
    return overrides


def load_config(config_path: Optional[Path], environ=None) -> Configuration:
    """Load defaults, then the YAML file if present, then KANRIGATE_* variables."""
    config_data = copy.deepcopy(DEFAULT_CONFIG)
    if config_path and config_path.exists():
        try:
            with open(config_path, "r") as f:
                user_config = yaml.safe_load(f)
        except (OSError, yaml.YAMLError) as e:
            raise ConfigError(f"Could not read configuration {config_path}: {e}") from e
        if user_config:
            if not isinstance(user_config, dict):
                raise ConfigError(f"Configuration {config_path} must be a mapping")
            config_data = deep_merge(user_config, config_data)
    config_data = deep_merge(_env_overrides(os.environ if environ is None else environ), config_data)
    return Configuration(config_data).validate()
