from pathlib import Path
from typing import Any, Dict, Optional

from ckb_deployment.chain import ChainConfig, ScriptConfig, get_genesis_scripts_config
from ckb_deployment.constants import (
    MAINNET_PREFIX,
    PROJECT_CONFIG_FILENAME,
    TESTNET_PREFIX,
)
from ckb_deployment.registry import default_registry_filepath
from ckb_deployment.utils import _load_yaml, resolve_path


def find_project_config(start: Optional[Path] = None) -> Optional[Path]:
    """Looks for the project config file in start (default: cwd) and its parents."""
    start = Path(start or Path.cwd()).resolve()
    for directory in (start, *start.parents):
        candidate = directory / PROJECT_CONFIG_FILENAME
        if candidate.is_file():
            return candidate
    return None


def validate_config(config: Dict) -> None:
    """Checks the shape of a project config, raising ValueError on the first problem."""
    chain = config.get("ckb_chain")
    if not chain:
        raise ValueError("ckb_chain is not set in config file.")
    if not chain.get("rpc_url"):
        raise ValueError("ckb_chain.rpc_url is not set in config file.")
    prefix = chain.get("prefix", TESTNET_PREFIX)
    if prefix not in (MAINNET_PREFIX, TESTNET_PREFIX):
        raise ValueError(
            f"ckb_chain.prefix must be '{MAINNET_PREFIX}' or '{TESTNET_PREFIX}', got '{prefix}'."
        )
    scripts = chain.get("scripts")
    if scripts is not None and not isinstance(scripts, dict):
        raise ValueError("ckb_chain.scripts must be a mapping of script name to script config.")


class ProjectConfig:
    """The project's ckb-deployment.yml, plus where it was found."""

    def __init__(self, config: Dict[str, Any], path: Optional[Path] = None):
        validate_config(config)
        self.config = config
        self.path = Path(path) if path else None

    @classmethod
    def from_yaml(cls, filepath: Path) -> "ProjectConfig":
        config = _load_yaml(filepath)
        return cls(config=config, path=filepath)

    @classmethod
    def discover(cls, start: Optional[Path] = None) -> Optional["ProjectConfig"]:
        filepath = find_project_config(start)
        if filepath is None:
            return None
        return cls.from_yaml(filepath)

    @property
    def root(self) -> Optional[Path]:
        return self.path.parent if self.path else None

    def _resolve(self, value: str) -> Path:
        return resolve_path(value, cwd=self.root)

    @property
    def rpc_url(self) -> str:
        return self.config["ckb_chain"]["rpc_url"]

    @property
    def prefix(self) -> str:
        return self.config["ckb_chain"].get("prefix", TESTNET_PREFIX)

    @property
    def workspace(self) -> Optional[Path]:
        workspace = self.config.get("contract", {}).get("workspace")
        return self._resolve(workspace) if workspace else None

    @property
    def registry_filepath(self) -> Path:
        dev_node = self.config.get("dev_node") or {}
        filepath = dev_node.get("builtin_contract_config_path")
        return self._resolve(filepath) if filepath else default_registry_filepath()

    @property
    def transaction_builder(self) -> Optional[str]:
        return self.config.get("transaction_builder")

    def chain_config(self) -> ChainConfig:
        """Scripts from the config file, otherwise discovered from the node's genesis block."""
        scripts = self.config["ckb_chain"].get("scripts")
        if scripts:
            script_configs = {
                name: ScriptConfig.from_dict(name, data) for name, data in scripts.items()
            }
        else:
            print(f"(i) Loading system scripts from genesis block at {self.rpc_url}")
            script_configs = get_genesis_scripts_config(self.rpc_url)
        return ChainConfig(prefix=self.prefix, scripts=script_configs)
