from itertools import count
from typing import Any, Dict, NamedTuple, Optional

import requests
from eth_typing import HexStr
from eth_utils import to_hex

from ckb_deployment.constants import (
    DAO,
    DEP_TYPES,
    HASH_TYPES,
    SECP256K1_BLAKE160,
    SECP256K1_BLAKE160_MULTISIG,
)
from ckb_deployment.errors import MissingDependency, RpcError
from ckb_deployment.script import Script, compute_script_hash


class ScriptConfig(NamedTuple):
    """A well-known script: how to reference it (code hash/hash type) and where it lives."""

    code_hash: HexStr
    hash_type: str
    tx_hash: HexStr
    index: HexStr
    dep_type: str

    @classmethod
    def from_dict(cls, name: str, data: Dict[str, Any]) -> "ScriptConfig":
        """Reads the lumos-style {CODE_HASH, HASH_TYPE, TX_HASH, INDEX, DEP_TYPE} layout."""
        try:
            config = cls(
                code_hash=data["CODE_HASH"],
                hash_type=data["HASH_TYPE"],
                tx_hash=data["TX_HASH"],
                index=data["INDEX"],
                dep_type=data["DEP_TYPE"],
            )
        except KeyError as e:
            raise ValueError(f"Script config for {name} is missing {e.args[0]}.")
        if config.hash_type not in HASH_TYPES:
            raise ValueError(f"Script config for {name} has unknown HASH_TYPE {config.hash_type}.")
        if config.dep_type not in DEP_TYPES:
            raise ValueError(f"Script config for {name} has unknown DEP_TYPE {config.dep_type}.")
        return config

    def to_dict(self) -> Dict[str, str]:
        return {
            "CODE_HASH": self.code_hash,
            "HASH_TYPE": self.hash_type,
            "TX_HASH": self.tx_hash,
            "INDEX": self.index,
            "DEP_TYPE": self.dep_type,
        }

    def script(self, args: HexStr) -> Script:
        return Script(code_hash=self.code_hash, hash_type=self.hash_type, args=args)


class ChainConfig(NamedTuple):
    """Address prefix plus the scripts known to be deployed on the target chain."""

    prefix: str
    scripts: Dict[str, ScriptConfig]

    def get_script(self, name: str) -> ScriptConfig:
        try:
            return self.scripts[name]
        except KeyError:
            raise MissingDependency(
                f"Script {name} is not present in the chain configuration "
                f"(known scripts: {', '.join(sorted(self.scripts)) or 'none'})."
            )


class RpcClient:
    """Minimal JSON-RPC client for a CKB node."""

    def __init__(self, url: str, timeout: Optional[float] = 30):
        self.url = url
        self.timeout = timeout
        self._ids = count(1)

    def request(self, method: str, *params) -> Any:
        payload = {"jsonrpc": "2.0", "id": next(self._ids), "method": method, "params": list(params)}
        try:
            response = requests.post(self.url, json=payload, timeout=self.timeout)
            response.raise_for_status()
        except requests.RequestException as e:
            raise RpcError(f"RPC request {method} to {self.url} failed: {e}") from e

        data = response.json()
        if data.get("error"):
            raise RpcError(f"RPC {method} returned an error: {data['error']}")
        return data["result"]

    def get_block_by_number(self, number: int) -> Dict[str, Any]:
        block = self.request("get_block_by_number", to_hex(number))
        if block is None:
            raise RpcError(f"Block {number} not found at {self.url}")
        return block


def _output_type_hash(transaction: Dict[str, Any], index: int) -> HexStr:
    type_script = transaction["outputs"][index]["type"]
    return compute_script_hash(
        Script(
            code_hash=type_script["code_hash"],
            hash_type=type_script["hash_type"],
            args=type_script["args"],
        )
    )


def get_genesis_scripts_config(rpc_url: str) -> Dict[str, ScriptConfig]:
    """
    Derives the system scripts from the genesis block: secp256k1 and multisig
    are referenced through the dep group in the second genesis transaction,
    the DAO script directly through the cellbase.
    """
    genesis = RpcClient(rpc_url).get_block_by_number(0)
    try:
        cellbase, dep_group = genesis["transactions"][0], genesis["transactions"][1]
        return {
            SECP256K1_BLAKE160: ScriptConfig(
                code_hash=_output_type_hash(cellbase, 1),
                hash_type="type",
                tx_hash=dep_group["hash"],
                index="0x0",
                dep_type="depGroup",
            ),
            SECP256K1_BLAKE160_MULTISIG: ScriptConfig(
                code_hash=_output_type_hash(cellbase, 4),
                hash_type="type",
                tx_hash=dep_group["hash"],
                index="0x1",
                dep_type="depGroup",
            ),
            DAO: ScriptConfig(
                code_hash=_output_type_hash(cellbase, 2),
                hash_type="type",
                tx_hash=cellbase["hash"],
                index="0x2",
                dep_type="code",
            ),
        }
    except (KeyError, IndexError, TypeError) as e:
        raise RpcError(f"Unexpected genesis block layout from {rpc_url}: {e}") from e
