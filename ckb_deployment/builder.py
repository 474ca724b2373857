import importlib
from abc import ABC, abstractmethod
from typing import Any, Callable, NamedTuple, Optional, Type, Union

from ckb_deployment.chain import ChainConfig
from ckb_deployment.constants import DEFAULT_FEE_RATE
from ckb_deployment.errors import MissingDependency
from ckb_deployment.from_info import FromInfo

MessageSigner = Callable[[str, FromInfo], str]


class CellReference(NamedTuple):
    """The cell holding a previously deployed binary."""

    tx_hash: str
    index: int
    data_hash: str


class DeploymentResult(NamedTuple):
    """
    A built (not yet sent) deployment or upgrade transaction.
    send() broadcasts it and returns the transaction hash.
    """

    tx: Any
    index: int
    data_hash: str
    type_id: Optional[str]
    hash_type: str
    dep_type: str
    send: Callable[[], str]


class TransactionBuilder(ABC):
    """
    Assembles deployment and upgrade transactions: cell collection, fee
    calculation, witnesses and broadcasting. When a message_signer is given
    it is called with each signing message and the FromInfo that owns the
    inputs being signed.
    """

    def __init__(
        self,
        rpc_url: str,
        chain_config: ChainConfig,
        message_signer: Optional[MessageSigner] = None,
    ):
        self.rpc_url = rpc_url
        self.chain_config = chain_config
        self.message_signer = message_signer

    @abstractmethod
    def deploy(
        self,
        binary_path: str,
        from_info: FromInfo,
        fee_rate: int = DEFAULT_FEE_RATE,
        enable_type_id: bool = True,
    ) -> DeploymentResult:
        raise NotImplementedError

    @abstractmethod
    def upgrade(
        self,
        binary_path: str,
        deployer_info: FromInfo,
        fee_payer_info: FromInfo,
        prior_cell: CellReference,
        fee_rate: int = DEFAULT_FEE_RATE,
    ) -> DeploymentResult:
        raise NotImplementedError

    def to_raw_transaction(self, tx: Any) -> Any:
        """Returns tx in the node's JSON-RPC (snake_case) layout for exporting."""
        return tx


def load_transaction_builder(
    import_path: Union[str, Type[TransactionBuilder], None]
) -> Type[TransactionBuilder]:
    """Resolves a "package.module:ClassName" import path to a TransactionBuilder subclass."""
    if import_path is None or import_path == "":
        raise MissingDependency(
            "No transaction builder configured; set 'transaction_builder' "
            "to a 'package.module:ClassName' import path."
        )
    if isinstance(import_path, type):
        builder_class = import_path
    else:
        module_name, _, attribute = import_path.partition(":")
        if not attribute:
            raise MissingDependency(f"Transaction builder '{import_path}' must be 'module:attribute'.")
        try:
            module = importlib.import_module(module_name)
            builder_class = getattr(module, attribute)
        except (ImportError, AttributeError) as e:
            raise MissingDependency(f"Cannot load transaction builder '{import_path}': {e}") from e

    if not (isinstance(builder_class, type) and issubclass(builder_class, TransactionBuilder)):
        raise MissingDependency(f"{import_path} is not a TransactionBuilder.")
    return builder_class
