import os
from pathlib import Path

#
# Filesystem
#

PROJECT_CONFIG_FILENAME = "ckb-deployment.yml"
CONFIG_HOME_ENVVAR = "CKB_DEPLOYMENT_HOME"
DEFAULT_CONFIG_HOME = Path.home() / ".ckb-deployment"
REGISTRY_FILENAME = "scripts.json"
WORKSPACE_DIRNAME = "contract"
RELEASE_BUILD_DIR = Path("build") / "release"

MIGRATION_FILENAME_FORMAT = "%Y-%m-%d-%H%M%S"
MIGRATION_FILE_SUFFIX = ".json"

STANDARD_JSON_FORMAT = {"indent": 2}


def config_home() -> Path:
    return Path(os.environ.get(CONFIG_HOME_ENVVAR, DEFAULT_CONFIG_HOME))


#
# Transactions
#

DEFAULT_FEE_RATE = 1000  # shannons/byte

#
# Signers
#

CKB_CLI = "ckb-cli"
CKB_CLI_MULTISIG = "ckb-cli-multisig"

SUPPORTED_SIGNERS = [CKB_CLI, CKB_CLI_MULTISIG]

SIGNATURE_MARKER_LENGTH = 2  # leading "0x" of every ckb-cli signature

MULTISIG_MARKER = "multisig"

#
# Scripts
#

SECP256K1_BLAKE160 = "SECP256K1_BLAKE160"
SECP256K1_BLAKE160_MULTISIG = "SECP256K1_BLAKE160_MULTISIG"
DAO = "DAO"

HASH_TYPES = {"data": 0, "type": 1, "data1": 2, "data2": 4}
DEP_TYPES = ["code", "depGroup"]

MAINNET_PREFIX = "ckb"
TESTNET_PREFIX = "ckt"

#
# Toolchain
#

CAPSULE = "capsule"
CONTRACT_TEMPLATES = ["rust", "c", "c-sharedlib"]
DEFAULT_CONTRACT_TEMPLATE = "rust"
REQUIRED_TOOLS = [CKB_CLI, CAPSULE]
