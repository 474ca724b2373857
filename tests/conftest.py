from pathlib import Path

import pytest

from ckb_deployment.builder import DeploymentResult, TransactionBuilder
from ckb_deployment.chain import ChainConfig, ScriptConfig
from ckb_deployment.constants import SECP256K1_BLAKE160, SECP256K1_BLAKE160_MULTISIG
from ckb_deployment.from_info import MultisigFromInfo
from ckb_deployment.signer import SigningTool

# Aggron testnet system scripts
SECP256K1_CODE_HASH = "0x9bd7e06f3ecf4be0f2fcd2188b23f1b9fcc88e5d4b65a8637b17723bbda3cce8"
MULTISIG_CODE_HASH = "0x5c5069eb0857efc65e1bca0c07df34c31663b3622fd3876c876320fc9634e2a8"
DEP_GROUP_TX_HASH = "0xf8de3bb47d055cdf460d93a2a6e1b05f7432f9777c8c474abf4eec1d4aee5d37"

PUBLIC_KEY_HASHES = (
    "0x" + "11" * 20,
    "0x" + "22" * 20,
    "0x" + "33" * 20,
)

NEW_TX_HASH = "0x" + "cd" * 32
DATA_HASH = "0x" + "ef" * 32
TYPE_ID = "0x" + "ab" * 32


class FakeTransactionBuilder(TransactionBuilder):
    """Records every call and returns a canned transaction."""

    instances = []

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.calls = []
        self.sent = []
        self.send_error = None
        self.tx_hash = NEW_TX_HASH
        FakeTransactionBuilder.instances.append(self)

    def _result(self):
        def send():
            if self.send_error:
                raise self.send_error
            if self.message_signer:
                self.signature = self.message_signer("0x" + "00" * 32, self.calls[-1][1])
            self.sent.append(self.tx_hash)
            return self.tx_hash

        return DeploymentResult(
            tx={"version": "0x0", "outputs": [], "witnesses": []},
            index=0,
            data_hash=DATA_HASH,
            type_id=TYPE_ID,
            hash_type="type",
            dep_type="code",
            send=send,
        )

    def deploy(self, binary_path, from_info, fee_rate=1000, enable_type_id=True):
        self.calls.append(("deploy", from_info, binary_path, fee_rate, enable_type_id))
        return self._result()

    def upgrade(self, binary_path, deployer_info, fee_payer_info, prior_cell, fee_rate=1000):
        self.calls.append(("upgrade", deployer_info, binary_path, fee_payer_info, prior_cell, fee_rate))
        return self._result()

    def to_raw_transaction(self, tx):
        return dict(tx, raw=True)


class FakeSigningTool(SigningTool):
    """Signs deterministically: 0x + <address as hex> so the signer order is visible."""

    def __init__(self):
        self.calls = []

    def sign(self, message, address, password):
        self.calls.append((message, address, password))
        return "0x" + address.encode().hex()


@pytest.fixture
def chain_config():
    return ChainConfig(
        prefix="ckt",
        scripts={
            SECP256K1_BLAKE160: ScriptConfig(
                code_hash=SECP256K1_CODE_HASH,
                hash_type="type",
                tx_hash=DEP_GROUP_TX_HASH,
                index="0x0",
                dep_type="depGroup",
            ),
            SECP256K1_BLAKE160_MULTISIG: ScriptConfig(
                code_hash=MULTISIG_CODE_HASH,
                hash_type="type",
                tx_hash=DEP_GROUP_TX_HASH,
                index="0x1",
                dep_type="depGroup",
            ),
        },
    )


@pytest.fixture
def multisig_info():
    return MultisigFromInfo(require_first_n=1, threshold=2, public_key_hashes=PUBLIC_KEY_HASHES)


@pytest.fixture
def signing_tool():
    return FakeSigningTool()


@pytest.fixture(autouse=True)
def config_home(tmp_path, monkeypatch):
    home = tmp_path / "home"
    monkeypatch.setenv("CKB_DEPLOYMENT_HOME", str(home))
    return home


@pytest.fixture(autouse=True)
def reset_builders():
    FakeTransactionBuilder.instances.clear()
    yield
    FakeTransactionBuilder.instances.clear()


@pytest.fixture
def contract_binary(tmp_path) -> Path:
    binary = tmp_path / "project" / "contract" / "build" / "release" / "foo"
    binary.parent.mkdir(parents=True)
    binary.write_bytes(b"\x7fELF")
    return binary
