import click

from ckb_deployment.constants import (
    CONTRACT_TEMPLATES,
    DEFAULT_CONTRACT_TEMPLATE,
    DEFAULT_FEE_RATE,
    SUPPORTED_SIGNERS,
)
from ckb_deployment.types import MinInt

name_option = click.option(
    "--name",
    "-n",
    help="Name of the contract.",
    type=str,
    default=None,
)

bin_path_option = click.option(
    "--bin-path",
    help="Path of the contract binary; relative paths resolve against the working directory.",
    type=click.Path(dir_okay=False),
    default=None,
)

from_option = click.option(
    "--from",
    "from_",
    help="Address of the deployer, or 'multisig R M hash1 hash2 ...'.",
    multiple=True,
    required=True,
)

deployer_option = click.option(
    "--deployer",
    help="Address of the contract deployer, or 'multisig R M hash1 hash2 ...'.",
    multiple=True,
    required=True,
)

fee_payer_option = click.option(
    "--fee-payer",
    help="Address paying the transaction fee, or 'multisig R M hash1 ...'. Defaults to the deployer.",
    multiple=True,
)

signer_option = click.option(
    "--signer",
    help="Signer provider.",
    type=click.Choice(SUPPORTED_SIGNERS),
    default=None,
)

fee_rate_option = click.option(
    "--fee-rate",
    help="Fee rate of each transaction in shannons/byte.",
    type=MinInt(1),
    default=DEFAULT_FEE_RATE,
    show_default=True,
)

export_option = click.option(
    "--export",
    "export_path",
    help="Export the unsigned transaction to this file instead of sending it.",
    type=click.Path(dir_okay=False),
    default=None,
)

migration_dir_option = click.option(
    "--migration-dir",
    help="Directory of JSON migration files recording each deployment.",
    type=click.Path(file_okay=False),
    default=None,
)

no_type_id_option = click.option(
    "--no-type-id",
    help="Deploy without a type id (the contract cannot be upgraded in place).",
    is_flag=True,
    default=False,
)

template_option = click.option(
    "--template",
    help="Language template.",
    type=click.Choice(CONTRACT_TEMPLATES),
    default=DEFAULT_CONTRACT_TEMPLATE,
    show_default=True,
)

config_option = click.option(
    "--config",
    "config_path",
    help="Project config file (default: nearest ckb-deployment.yml).",
    type=click.Path(dir_okay=False, exists=True),
    default=None,
)

required_migration_dir_option = click.option(
    "--migration-dir",
    help="Directory of JSON migration files; the latest record locates the deployed contract.",
    type=click.Path(file_okay=False),
    required=True,
)
