import logging
from pathlib import Path

import click
from rich.console import Console

from . import handlers
from ..cluster import load_kube_client_config
from ..config import get_default_config_path, load_config
from ..errors import KanriGateError

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def _services(ctx: click.Context) -> handlers.Services:
    """Build the services on first use so that --help needs no cluster."""
    obj = ctx.find_root().obj
    if "SERVICES" not in obj:
        logger = logging.getLogger("kanrigate")
        try:
            configuration = load_config(obj["CONFIG_PATH"])
            load_kube_client_config(logger)
            obj["SERVICES"] = handlers.build_services(configuration)
        except KanriGateError as e:
            Console().print(f"[red]❌ {e}[/red]")
            ctx.exit(1)
    return obj["SERVICES"]


@click.group()
@click.option(
    "--config",
    "config_path",
    type=click.Path(path_type=Path),
    default=None,
    help="Path to the kanrigate config file.",
)
@click.option("-v", "--verbose", is_flag=True, help="Log each cluster mutation.")
@click.pass_context
def main(ctx, config_path, verbose) -> None:
    """Provision and inspect per-user Kubernetes permissions."""
    ctx.ensure_object(dict)
    if verbose:
        logging.basicConfig(level=logging.INFO, format=LOG_FORMAT)
    ctx.obj["CONFIG_PATH"] = config_path if config_path else get_default_config_path()


@main.command(help="List the available permission templates.")
@click.pass_context
def templates(ctx) -> None:
    handlers.show_templates(_services(ctx))


@main.command(help="List all namespaces.")
@click.pass_context
def namespaces(ctx) -> None:
    handlers.list_namespaces(_services(ctx))


@main.group()
def identity() -> None:
    """Manage user identities (ServiceAccounts)."""
    pass


@identity.command(name="list", help="List identities in the credential namespace.")
@click.pass_context
def identity_list(ctx) -> None:
    handlers.list_identities(_services(ctx))


@identity.command(name="create", help="Create an identity.")
@click.argument("username", type=str)
@click.pass_context
def identity_create(ctx, username: str) -> None:
    handlers.create_identity(_services(ctx), username)


@identity.command(name="delete", help="Delete an identity. Bindings and credentials are kept.")
@click.argument("username", type=str)
@click.pass_context
def identity_delete(ctx, username: str) -> None:
    handlers.delete_identity(_services(ctx), username)


@main.group()
def credential() -> None:
    """Manage token credentials."""
    pass


@credential.command(name="ensure", help="Create the user's token Secret unless one exists.")
@click.argument("username", type=str)
@click.pass_context
def credential_ensure(ctx, username: str) -> None:
    handlers.ensure_credential(_services(ctx), username)


@credential.command(name="revoke", help="Delete every token Secret of the user.")
@click.argument("username", type=str)
@click.pass_context
def credential_revoke(ctx, username: str) -> None:
    handlers.revoke_credentials(_services(ctx), username)


@main.group()
def binding() -> None:
    """Grant and revoke permission templates."""
    pass


_namespace_option = click.option(
    "--namespace",
    "-n",
    type=str,
    default=None,
    help="Target namespace. Omit for a cluster-wide binding.",
)


@binding.command(name="create", help="Grant a permission template to a user.")
@click.argument("username", type=str)
@click.argument("permission", type=str)
@_namespace_option
@click.pass_context
def binding_create(ctx, username: str, permission: str, namespace: str) -> None:
    handlers.create_binding(_services(ctx), username, permission, namespace)


@binding.command(name="delete", help="Revoke a permission template from a user.")
@click.argument("username", type=str)
@click.argument("permission", type=str)
@_namespace_option
@click.pass_context
def binding_delete(ctx, username: str, permission: str, namespace: str) -> None:
    handlers.delete_binding(_services(ctx), username, permission, namespace)


@main.command(help="Show the permissions held by a user.")
@click.argument("username", type=str)
@click.pass_context
def permissions(ctx, username: str) -> None:
    handlers.show_permissions(_services(ctx), username)


@main.command(help="Generate a kubeconfig for a user.")
@click.argument("username", type=str)
@click.argument("namespace", type=str)
@click.option(
    "--output",
    "-o",
    type=click.Path(path_type=Path, dir_okay=False),
    default=None,
    help="Write the kubeconfig to this file instead of stdout.",
)
@click.pass_context
def kubeconfig(ctx, username: str, namespace: str, output: Path) -> None:
    handlers.generate_kubeconfig(_services(ctx), username, namespace, output)


if __name__ == "__main__":
    main()
