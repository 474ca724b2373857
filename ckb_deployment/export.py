from pathlib import Path
from typing import Any, Dict, Sequence

from ckb_deployment.chain import ChainConfig
from ckb_deployment.constants import SECP256K1_BLAKE160
from ckb_deployment.from_info import FromInfo, MultisigFromInfo, multisig_infos
from ckb_deployment.script import multisig_lock_args, script_to_address
from ckb_deployment.utils import _write_json


def multisig_config(from_info: MultisigFromInfo, chain_config: ChainConfig) -> Dict[str, Any]:
    template = chain_config.get_script(SECP256K1_BLAKE160)
    sighash_addresses = [
        script_to_address(template.script(args=public_key_hash), prefix=chain_config.prefix)
        for public_key_hash in from_info.public_key_hashes
    ]
    return {
        "sighash_addresses": sighash_addresses,
        "require_first_n": from_info.require_first_n,
        "threshold": from_info.threshold,
    }


def build_export_bundle(
    transaction: Any, from_infos: Sequence[FromInfo], chain_config: ChainConfig
) -> Dict[str, Any]:
    # single-key signers need no offline multisig configuration
    multisig_configs = dict()
    for from_info in multisig_infos(from_infos):
        lock_args = multisig_lock_args(from_info)
        multisig_configs[lock_args] = multisig_config(from_info, chain_config)

    return {
        "transaction": transaction,
        "multisig_configs": multisig_configs,
        "signatures": {},
    }


def write_export_bundle(
    filepath: Path,
    transaction: Any,
    from_infos: Sequence[FromInfo],
    chain_config: ChainConfig,
) -> Path:
    """
    Writes an unsigned transaction together with the multisig configuration
    an offline signer (e.g. `ckb-cli tx sign-inputs`) needs to complete it.
    """
    bundle = build_export_bundle(transaction, from_infos, chain_config)
    filepath = Path(filepath)
    filepath.parent.mkdir(parents=True, exist_ok=True)
    _write_json(filepath, bundle)
    print(f"(i) Transaction exported to {filepath}")
    return filepath
