import asyncio
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from rich.console import Console
from rich.table import Table

from ..cluster import KubeCluster
from ..config import Configuration
from ..errors import KanriGateError
from ..introspection import IntrospectionService
from ..kubeconfig import KubeconfigGenerator, dump_kubeconfig
from ..provisioning import ProvisioningService


@dataclass
class Services:
    configuration: Configuration
    provisioning: ProvisioningService
    introspection: IntrospectionService
    kubeconfig: KubeconfigGenerator


def build_services(configuration: Configuration, cluster: Optional[KubeCluster] = None) -> Services:
    cluster = cluster if cluster is not None else KubeCluster()
    namespace = configuration.credential_namespace
    return Services(
        configuration=configuration,
        provisioning=ProvisioningService(cluster, namespace),
        introspection=IntrospectionService(
            cluster,
            namespace,
            namespaced_templates=configuration.namespaced_templates,
            cluster_templates=configuration.cluster_templates,
        ),
        kubeconfig=KubeconfigGenerator(cluster, namespace),
    )


def _run(console: Console, coro):
    try:
        return asyncio.run(coro)
    except KanriGateError as e:
        console.print(f"[red]❌ Error ({type(e).__name__}): {e}[/red]")
        sys.exit(1)


def _scope(namespace: Optional[str]) -> str:
    return f"namespace '{namespace}'" if namespace else "cluster scope"


def show_templates(services: Services) -> None:
    console = Console()
    templates = services.introspection.list_templates()

    table = Table(title="Permission Templates")
    table.add_column("Scope", style="cyan")
    table.add_column("Template", style="magenta")
    for scope, names in templates.items():
        for name in names:
            table.add_row(scope, name)
    console.print(table)


def list_namespaces(services: Services) -> None:
    console = Console()
    for name in _run(console, services.introspection.list_namespaces()):
        console.print(name)


def list_identities(services: Services) -> None:
    console = Console()
    identities = _run(console, services.introspection.list_identities())
    if not identities:
        console.print("No identities found.")
        return
    for name in identities:
        console.print(name)


def create_identity(services: Services, username: str) -> None:
    console = Console()
    _run(console, services.provisioning.create_identity(username))
    console.print(f"✅ Identity '{username}' created successfully.")


def delete_identity(services: Services, username: str) -> None:
    console = Console()
    _run(console, services.provisioning.delete_identity(username))
    console.print(f"✅ Identity '{username}' deleted successfully.")


def ensure_credential(services: Services, username: str) -> None:
    console = Console()
    name = _run(console, services.provisioning.ensure_credential(username))
    console.print(f"✅ Credential '{name}' ready for '{username}'.")


def revoke_credentials(services: Services, username: str) -> None:
    console = Console()
    deleted = _run(console, services.provisioning.revoke_credentials(username))
    if not deleted:
        console.print(f"No credentials found for '{username}'.")
        return
    for name in deleted:
        console.print(f"✅ Credential '{name}' revoked.")


def create_binding(
    services: Services, username: str, permission: str, namespace: Optional[str]
) -> None:
    console = Console()
    name = _run(console, services.provisioning.create_binding(username, permission, namespace))
    console.print(f"✅ Granted '{permission}' to '{username}' in {_scope(namespace)} ({name}).")


def delete_binding(
    services: Services, username: str, permission: str, namespace: Optional[str]
) -> None:
    console = Console()
    name = _run(console, services.provisioning.delete_binding(username, permission, namespace))
    console.print(f"✅ Revoked '{permission}' from '{username}' in {_scope(namespace)} ({name}).")


async def _gather_permissions(services: Services, username: str):
    scan = await services.introspection.list_namespaced_permissions(username)
    cluster = await services.introspection.list_cluster_permissions(username)
    return scan, cluster


def show_permissions(services: Services, username: str) -> None:
    console = Console()
    scan, cluster = _run(console, _gather_permissions(services, username))

    table = Table(title=f"Permissions for {username}")
    table.add_column("Scope", style="cyan")
    table.add_column("Permission", style="magenta")
    for namespace in sorted(scan.permissions):
        for permission in sorted(scan.permissions[namespace]):
            table.add_row(namespace, permission)
    for permission in sorted(cluster):
        table.add_row("(cluster)", permission)

    if table.row_count:
        console.print(table)
    else:
        console.print(f"No permissions found for '{username}'.")

    if scan.failed_namespaces:
        console.print(
            "[yellow]⚠️ Could not read bindings in: "
            f"{', '.join(scan.failed_namespaces)}[/yellow]"
        )


def generate_kubeconfig(
    services: Services, username: str, namespace: str, output: Optional[Path]
) -> None:
    console = Console()
    configuration = services.configuration
    document = _run(
        console,
        services.kubeconfig.generate(
            username,
            namespace,
            configuration.cluster_name,
            configuration.control_plane_address,
        ),
    )
    rendered = dump_kubeconfig(document)
    if output is None:
        # When printing to stdout for piping, we don't want Rich's markup
        print(rendered, end="")
        return
    output.write_text(rendered)
    console.print(f"✅ Kubeconfig for '{username}' written to {output}")
