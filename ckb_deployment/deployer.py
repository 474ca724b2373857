from pathlib import Path
from typing import Any, Callable, List, Optional, Sequence, Type

from ckb_deployment.builder import (
    CellReference,
    DeploymentResult,
    MessageSigner,
    TransactionBuilder,
)
from ckb_deployment.chain import ChainConfig
from ckb_deployment.constants import (
    DEFAULT_FEE_RATE,
    RELEASE_BUILD_DIR,
    SECP256K1_BLAKE160_MULTISIG,
)
from ckb_deployment.errors import (
    BookkeepingError,
    ContractBinaryNotFound,
    DeploymentError,
    ContractNotSpecified,
    MigrationDirectoryNotFound,
    MigrationNotFound,
    MissingArgument,
    WorkspaceNotFound,
)
from ckb_deployment.export import write_export_bundle
from ckb_deployment.from_info import FromInfo, MultisigFromInfo
from ckb_deployment.migrations import (
    MigrationRecord,
    append_migration,
    check_migration_directory,
    find_latest_migration,
)
from ckb_deployment.registry import ContractRegistry, RegistryEntry
from ckb_deployment.script import multisig_lock_args, script_to_address, serialize_multisig_script
from ckb_deployment.signer import CredentialSource, SigningTool, sign_message
from ckb_deployment.utils import resolve_path


def signer_address(from_info: FromInfo, chain_config: ChainConfig) -> str:
    if isinstance(from_info, MultisigFromInfo):
        template = chain_config.get_script(SECP256K1_BLAKE160_MULTISIG)
        lock = template.script(args=multisig_lock_args(from_info))
        return script_to_address(lock, prefix=chain_config.prefix)
    return from_info.reference


def signature_prefix(from_info: FromInfo) -> str:
    if isinstance(from_info, MultisigFromInfo):
        return serialize_multisig_script(from_info)
    return ""


class Deployer:
    """
    Deploys and upgrades contract binaries through a TransactionBuilder and
    keeps the migration ledger and the contract registry in step with what
    was actually sent.
    """

    def __init__(
        self,
        builder_class: Type[TransactionBuilder],
        rpc_url: str,
        chain_config: ChainConfig,
        registry_filepath: Optional[Path] = None,
        signer: Optional[str] = None,
        signing_tool: Optional[SigningTool] = None,
        credentials: Optional[CredentialSource] = None,
        workspace_resolver: Optional[Callable[[], Path]] = None,
        cwd: Optional[Path] = None,
    ):
        self.rpc_url = rpc_url
        self.chain_config = chain_config
        self.registry_filepath = registry_filepath
        self.signer = signer
        self.signing_tool = signing_tool
        self.credentials = credentials
        self.workspace_resolver = workspace_resolver
        self.cwd = Path(cwd or Path.cwd())

        message_signer: Optional[MessageSigner] = self._sign_message if signer else None
        self.builder = builder_class(
            rpc_url=rpc_url, chain_config=chain_config, message_signer=message_signer
        )
        self._print_deployment_info()

    def _print_deployment_info(self):
        print(
            f"RPC: {self.rpc_url}",
            f"Address prefix: {self.chain_config.prefix}",
            f"Registry: {self.registry_filepath or '(default)'}",
            f"Signer: {self.signer or '(transaction builder)'}",
            sep="\n",
        )

    def _sign_message(self, message: str, from_info: FromInfo) -> str:
        return sign_message(
            message=message,
            address=signer_address(from_info, self.chain_config),
            signer=self.signer,
            prefix=signature_prefix(from_info),
            signing_tool=self.signing_tool,
            credentials=self.credentials,
        )

    #
    # Resolution
    #

    def resolve_binary_path(self, name: Optional[str], bin_path: Optional[str]) -> Path:
        if not (name or bin_path):
            raise ContractNotSpecified()

        if bin_path:
            binary_path = resolve_path(bin_path, cwd=self.cwd)
        else:
            if self.workspace_resolver is None:
                raise WorkspaceNotFound(f"Cannot locate the release build of {name}: no workspace.")
            workspace = self.workspace_resolver()
            binary_path = Path(workspace) / RELEASE_BUILD_DIR / name

        if not binary_path.exists():
            raise ContractBinaryNotFound(name or bin_path, binary_path)
        return binary_path

    def resolve_migration(self, migration_dir: Path, contract_name: str) -> MigrationRecord:
        if not migration_dir.is_dir():
            raise MigrationDirectoryNotFound(contract_name, migration_dir)
        migration = find_latest_migration(migration_dir, contract_name)
        if migration is None:
            raise MigrationNotFound(contract_name, migration_dir)
        return migration

    #
    # Commands
    #

    def deploy(
        self,
        from_infos: Sequence[FromInfo],
        name: Optional[str] = None,
        bin_path: Optional[str] = None,
        fee_rate: int = DEFAULT_FEE_RATE,
        export: Optional[str] = None,
        migration_dir: Optional[str] = None,
        enable_type_id: bool = True,
    ) -> Any:
        """Deploys a contract binary, returning the built transaction."""
        if not from_infos:
            raise MissingArgument("from")
        contract_name = name or bin_path
        binary_path = self.resolve_binary_path(name, bin_path)

        migration_path = None
        if migration_dir and not export:
            # an unreadable ledger must fail before anything is sent
            migration_path = resolve_path(migration_dir, cwd=self.cwd)
            check_migration_directory(migration_path)

        print(f"\nDeploying {contract_name} from {binary_path}")
        result = self.builder.deploy(
            str(binary_path),
            from_infos[0],
            fee_rate=fee_rate,
            enable_type_id=enable_type_id,
        )

        if export:
            self._export(export, result, from_infos)
            return result.tx

        tx_hash = self._send(result)
        self._bookkeep(tx_hash, contract_name, binary_path, result, migration_path)
        return result.tx

    def upgrade(
        self,
        deployer_infos: Sequence[FromInfo],
        migration_dir: str,
        name: Optional[str] = None,
        bin_path: Optional[str] = None,
        fee_payer_infos: Optional[Sequence[FromInfo]] = None,
        fee_rate: int = DEFAULT_FEE_RATE,
        export: Optional[str] = None,
    ) -> Any:
        """Replaces the latest recorded deployment of a contract, returning the built transaction."""
        if not deployer_infos:
            raise MissingArgument("deployer")
        fee_payer_infos = list(fee_payer_infos or deployer_infos)
        contract_name = name or bin_path
        binary_path = self.resolve_binary_path(name, bin_path)

        migration_path = resolve_path(migration_dir, cwd=self.cwd)
        migration = self.resolve_migration(migration_path, contract_name)
        prior_cell = CellReference(
            tx_hash=migration.tx_hash,
            index=migration.index,
            data_hash=migration.data_hash,
        )

        print(
            f"\nUpgrading {contract_name} at {prior_cell.tx_hash}:{prior_cell.index} "
            f"with {binary_path}"
        )
        result = self.builder.upgrade(
            str(binary_path),
            deployer_infos[0],
            fee_payer_infos[0],
            prior_cell,
            fee_rate=fee_rate,
        )

        if export:
            self._export(export, result, [*fee_payer_infos, *deployer_infos])
            return result.tx

        tx_hash = self._send(result)
        self._bookkeep(tx_hash, contract_name, binary_path, result, migration_path)
        return result.tx

    #
    # Branches
    #

    def _export(self, export: str, result: DeploymentResult, from_infos: List[FromInfo]) -> None:
        write_export_bundle(
            filepath=resolve_path(export, cwd=self.cwd),
            transaction=self.builder.to_raw_transaction(result.tx),
            from_infos=from_infos,
            chain_config=self.chain_config,
        )

    def _send(self, result: DeploymentResult) -> str:
        tx_hash = result.send()
        print(f"(i) Deploy success, tx hash: {tx_hash}")
        return tx_hash

    def _record_migration(
        self, migration_dir: Path, contract_name: str, tx_hash: str, result: DeploymentResult
    ) -> None:
        record = MigrationRecord(
            name=contract_name,
            tx_hash=tx_hash,
            index=result.index,
            data_hash=result.data_hash,
            type_id=result.type_id,
        )
        try:
            append_migration(migration_dir, record)
        except (OSError, DeploymentError) as e:
            raise BookkeepingError(tx_hash=tx_hash, step="migration record", cause=e) from e

    def _update_registry(
        self, contract_name: str, binary_path: Path, tx_hash: str, result: DeploymentResult
    ) -> None:
        entry = RegistryEntry(
            name=contract_name,
            path=str(binary_path),
            code_hash=result.data_hash,
            hash_type=result.hash_type,
            tx_hash=tx_hash,
            index=result.index,
            dep_type=result.dep_type,
        )
        try:
            registry = ContractRegistry.load(self.registry_filepath)
            registry.upsert(entry)
            registry.write()
        except (OSError, ValueError) as e:
            raise BookkeepingError(tx_hash=tx_hash, step="contract registry", cause=e) from e

    def _bookkeep(
        self,
        tx_hash: str,
        contract_name: str,
        binary_path: Path,
        result: DeploymentResult,
        migration_dir: Optional[Path] = None,
    ) -> None:
        """Records a sent transaction in the ledger and the registry, attempting both."""
        failures = []
        if migration_dir is not None:
            try:
                self._record_migration(migration_dir, contract_name, tx_hash, result)
            except BookkeepingError as e:
                failures.append(e)
        try:
            self._update_registry(contract_name, binary_path, tx_hash, result)
        except BookkeepingError as e:
            failures.append(e)

        for failure in failures[1:]:
            print(f"(!) {failure}")
        if failures:
            raise failures[0]
