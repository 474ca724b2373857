import json

import pytest

from ckb_deployment.chain import ChainConfig
from ckb_deployment.errors import MissingDependency
from ckb_deployment.export import build_export_bundle, write_export_bundle
from ckb_deployment.from_info import SimpleFromInfo
from ckb_deployment.script import Script, multisig_lock_args, script_to_address
from tests.conftest import PUBLIC_KEY_HASHES, SECP256K1_CODE_HASH

TRANSACTION = {"version": "0x0", "cell_deps": [], "inputs": [], "outputs": []}


def test_bundle_for_multisig(chain_config, multisig_info):
    bundle = build_export_bundle(TRANSACTION, [multisig_info], chain_config)

    lock_args = multisig_lock_args(multisig_info)
    assert bundle["transaction"] == TRANSACTION
    assert bundle["signatures"] == {}
    assert list(bundle["multisig_configs"]) == [lock_args]

    config = bundle["multisig_configs"][lock_args]
    assert config["require_first_n"] == 1
    assert config["threshold"] == 2
    assert config["sighash_addresses"] == [
        script_to_address(Script(SECP256K1_CODE_HASH, "type", h), prefix="ckt")
        for h in PUBLIC_KEY_HASHES
    ]


def test_simple_entries_are_skipped(chain_config, multisig_info):
    bundle = build_export_bundle(
        TRANSACTION, [SimpleFromInfo("ckt1qa"), multisig_info], chain_config
    )
    assert len(bundle["multisig_configs"]) == 1

    bundle = build_export_bundle(TRANSACTION, [SimpleFromInfo("ckt1qa")], chain_config)
    assert bundle["multisig_configs"] == {}


def test_missing_template_script(multisig_info):
    with pytest.raises(MissingDependency):
        build_export_bundle(TRANSACTION, [multisig_info], ChainConfig(prefix="ckt", scripts={}))


def test_simple_export_without_template():
    bundle = build_export_bundle(
        TRANSACTION, [SimpleFromInfo("ckt1qa")], ChainConfig(prefix="ckt", scripts={})
    )
    assert bundle["multisig_configs"] == {}


def test_write_bundle(tmp_path, chain_config, multisig_info):
    filepath = write_export_bundle(
        tmp_path / "out" / "tx.json", TRANSACTION, [multisig_info], chain_config
    )
    text = filepath.read_text()
    assert text.startswith('{\n  "transaction"')
    assert json.loads(text)["signatures"] == {}
