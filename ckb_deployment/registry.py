"""
Contract registry: contract name -> current on-chain script identity.

    {
      "my-contract": {
        "path": "/abs/path/build/release/my-contract",
        "scriptBase": {"codeHash": "0x...", "hashType": "type"},
        "outPoint": {"txHash": "0x...", "index": "0x0"},
        "depType": "code"
      }
    }
"""
from collections import OrderedDict
from pathlib import Path
from typing import Dict, List, NamedTuple, Optional

from eth_utils import to_hex

from ckb_deployment.constants import REGISTRY_FILENAME, config_home
from ckb_deployment.utils import _load_json, _write_json_atomic

ContractName = str


class RegistryEntry(NamedTuple):
    """Represents a single entry in the contract registry."""

    name: ContractName
    path: str
    code_hash: str
    hash_type: str
    tx_hash: str
    index: int
    dep_type: str

    def to_dict(self) -> dict:
        return {
            "path": self.path,
            "scriptBase": {"codeHash": self.code_hash, "hashType": self.hash_type},
            "outPoint": {"txHash": self.tx_hash, "index": to_hex(self.index)},
            "depType": self.dep_type,
        }

    @classmethod
    def from_dict(cls, name: ContractName, data: dict) -> "RegistryEntry":
        index = data["outPoint"]["index"]
        return cls(
            name=name,
            path=data["path"],
            code_hash=data["scriptBase"]["codeHash"],
            hash_type=data["scriptBase"]["hashType"],
            tx_hash=data["outPoint"]["txHash"],
            index=int(index, 16) if isinstance(index, str) else int(index),
            dep_type=data["depType"],
        )


def default_registry_filepath() -> Path:
    return config_home() / REGISTRY_FILENAME


def read_registry(filepath: Path) -> List[RegistryEntry]:
    data = _load_json(filepath)
    if not isinstance(data, dict):
        raise ValueError("Registry root must be a JSON object.")
    return [RegistryEntry.from_dict(name, artifacts) for name, artifacts in data.items()]


class ContractRegistry:
    """
    Mapping of contract name to registry entry, loaded fully from and
    written back to a single JSON file. No concurrent writers are assumed.
    """

    def __init__(self, filepath: Path, entries: Optional[Dict[ContractName, RegistryEntry]] = None):
        self.filepath = Path(filepath)
        self.entries = OrderedDict(entries or {})

    @classmethod
    def load(cls, filepath: Optional[Path] = None) -> "ContractRegistry":
        """
        Loads the registry at filepath (default: the user config directory).
        A missing or unreadable registry loads as empty and is repaired on the next write.
        """
        filepath = Path(filepath) if filepath else default_registry_filepath()
        if not filepath.exists():
            return cls(filepath=filepath)

        try:
            entries = read_registry(filepath)
        except (OSError, ValueError, KeyError, TypeError) as e:
            print(f"(!) Ignoring unreadable registry at {filepath} ({e}); starting empty.")
            return cls(filepath=filepath)

        return cls(filepath=filepath, entries={entry.name: entry for entry in entries})

    def __contains__(self, name: ContractName) -> bool:
        return name in self.entries

    def __len__(self) -> int:
        return len(self.entries)

    def get(self, name: ContractName) -> Optional[RegistryEntry]:
        return self.entries.get(name)

    def upsert(self, entry: RegistryEntry) -> None:
        """Replaces any entry with the same name entirely."""
        self.entries[entry.name] = entry

    def write(self) -> Path:
        data = {name: entry.to_dict() for name, entry in self.entries.items()}
        _write_json_atomic(self.filepath, data)
        print(f"(i) Registry written to {self.filepath}!")
        return self.filepath
