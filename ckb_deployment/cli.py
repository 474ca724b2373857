#!/usr/bin/python3
"""
Deploy, upgrade and build CKB contracts.

Commands sharing a migration directory or registry file must not run
concurrently; nothing here locks them.
"""
from pathlib import Path
from typing import Iterable, List, Optional

import click

from ckb_deployment.builder import load_transaction_builder
from ckb_deployment.config import ProjectConfig
from ckb_deployment.constants import CKB_CLI, PROJECT_CONFIG_FILENAME
from ckb_deployment.deployer import Deployer
from ckb_deployment.errors import BookkeepingError, DeploymentError
from ckb_deployment.from_info import parse_from_info
from ckb_deployment.options import (
    bin_path_option,
    config_option,
    deployer_option,
    export_option,
    fee_payer_option,
    fee_rate_option,
    from_option,
    migration_dir_option,
    name_option,
    no_type_id_option,
    required_migration_dir_option,
    signer_option,
    template_option,
)
from ckb_deployment.signer import sign_message as _sign_message
from ckb_deployment.types import HexString
from ckb_deployment.workspace import (
    build_contracts,
    check_environment,
    get_workspace,
    init_project,
    new_contract,
)


class ContractGroup(click.Group):
    """Reports deployment errors as CLI errors instead of tracebacks."""

    def invoke(self, ctx):
        try:
            return super().invoke(ctx)
        except BookkeepingError as e:
            click.secho(
                f"! Transaction {e.tx_hash} was accepted but the {e.step} was not updated.\n"
                "  Record it by hand before the next upgrade.",
                fg="red",
                err=True,
            )
            raise click.ClickException(str(e)) from e
        except DeploymentError as e:
            raise click.ClickException(str(e)) from e


def _tokens(values: Iterable[str]) -> List[str]:
    """Accepts both repeated options and a single space-separated value."""
    return [token for value in values for token in value.split()]


def _project_config(ctx: click.Context) -> Optional[ProjectConfig]:
    if "project_config" not in ctx.obj:
        config_path = ctx.obj.get("config_path")
        try:
            if config_path:
                config = ProjectConfig.from_yaml(Path(config_path))
            else:
                config = ProjectConfig.discover()
        except ValueError as e:
            raise click.ClickException(f"Invalid project config: {e}") from e
        ctx.obj["project_config"] = config
    return ctx.obj["project_config"]


def _require_project_config(ctx: click.Context) -> ProjectConfig:
    config = _project_config(ctx)
    if config is None:
        raise click.ClickException(
            f"No {PROJECT_CONFIG_FILENAME} found; run inside a project or pass --config."
        )
    return config


def _deployer(ctx: click.Context, signer: Optional[str]) -> Deployer:
    config = _require_project_config(ctx)
    builder_class = load_transaction_builder(config.transaction_builder)
    return Deployer(
        builder_class=builder_class,
        rpc_url=config.rpc_url,
        chain_config=config.chain_config(),
        registry_filepath=config.registry_filepath,
        signer=signer,
        workspace_resolver=lambda: get_workspace(config),
    )


@click.group(cls=ContractGroup, name="contract")
@config_option
@click.pass_context
def cli(ctx, config_path):
    """Manage CKB contracts: build, deploy and upgrade."""
    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config_path


@cli.command()
@name_option
@bin_path_option
@from_option
@signer_option
@fee_rate_option
@export_option
@no_type_id_option
@migration_dir_option
@click.pass_context
def deploy(ctx, name, bin_path, from_, signer, fee_rate, export_path, no_type_id, migration_dir):
    """Deploy a contract binary."""
    from_infos = parse_from_info(_tokens(from_))
    deployer = _deployer(ctx, signer)
    deployer.deploy(
        from_infos=from_infos,
        name=name,
        bin_path=bin_path,
        fee_rate=fee_rate,
        export=export_path,
        migration_dir=migration_dir,
        enable_type_id=not no_type_id,
    )
    if export_path:
        click.secho(f"Transaction exported to {export_path}", fg="green")
    else:
        click.secho(f"Deployed {name or bin_path}", fg="green")


@cli.command()
@name_option
@bin_path_option
@required_migration_dir_option
@fee_payer_option
@deployer_option
@signer_option
@fee_rate_option
@export_option
@click.pass_context
def upgrade(ctx, name, bin_path, migration_dir, fee_payer, deployer, signer, fee_rate, export_path):
    """Upgrade a deployed contract to a new binary."""
    deployer_infos = parse_from_info(_tokens(deployer))
    fee_payer_infos = parse_from_info(_tokens(fee_payer)) if fee_payer else deployer_infos
    contract_deployer = _deployer(ctx, signer)
    contract_deployer.upgrade(
        deployer_infos=deployer_infos,
        fee_payer_infos=fee_payer_infos,
        migration_dir=migration_dir,
        name=name,
        bin_path=bin_path,
        fee_rate=fee_rate,
        export=export_path,
    )
    if export_path:
        click.secho(f"Transaction exported to {export_path}", fg="green")
    else:
        click.secho(f"Upgraded {name or bin_path}", fg="green")


@cli.command(name="sign-message")
@click.option("--message", help="Message to be signed.", type=HexString(), required=True)
@click.option("--address", help="Address of the message signer.", required=True)
@click.option("--prefix", help="Prefix of the signature.", default="")
@click.option(
    "--signer",
    help="Signer provider [possible values: ckb-cli, ckb-cli-multisig].",
    default=CKB_CLI,
    show_default=True,
)
def sign_message(message, address, prefix, signer):
    """Sign a message with ckb-cli."""
    signature = _sign_message(message=message, address=address, signer=signer, prefix=prefix)
    click.echo(signature)


@cli.command()
@name_option
@click.option("--release", help="Build contracts in release mode.", is_flag=True, default=False)
@click.pass_context
def build(ctx, name, release):
    """Build contracts in the workspace with capsule."""
    workspace = get_workspace(_project_config(ctx))
    build_contracts(workspace, name=name, release=release)


@cli.command()
@click.option("--name", "-n", help="The name of the new contract.", required=True)
@template_option
@click.pass_context
def new(ctx, name, template):
    """Add a new contract to the workspace."""
    workspace = get_workspace(_project_config(ctx))
    new_contract(workspace, name=name, template=template)


@cli.command()
@click.option("--name", "-n", help="The name of the new contract project.", required=True)
@template_option
@click.pass_context
def init(ctx, name, template):
    """Create a contract project in the workspace."""
    workspace = get_workspace(_project_config(ctx))
    init_project(workspace, name=name, template=template)
    click.secho(f"Contract project {name} initialized in {workspace}", fg="green")


@cli.command(name="get-workspace")
@click.pass_context
def get_workspace_command(ctx):
    """Print the contract workspace directory."""
    click.echo(get_workspace(_project_config(ctx)))


@cli.command(name="set-environment")
def set_environment():
    """Check that the contract toolchain is installed."""
    tools = check_environment()
    for tool, location in tools.items():
        if location:
            click.secho(f"    {tool}: {location}", fg="cyan")
        else:
            click.secho(f"    {tool}: not found", fg="yellow")

    missing = [tool for tool, location in tools.items() if not location]
    if missing:
        raise click.ClickException(f"Missing tools: {', '.join(missing)}")


if __name__ == "__main__":
    cli()
