import json
import os
from pathlib import Path
from typing import Any, Optional, Union

import yaml

from ckb_deployment.constants import STANDARD_JSON_FORMAT


def _load_yaml(filepath: Path) -> dict:
    """Loads a YAML file."""
    with open(filepath, "r") as file:
        return yaml.safe_load(file) or dict()


def _load_json(filepath: Path) -> Any:
    """Loads a JSON file."""
    with open(filepath, "r") as file:
        return json.load(file)


def _dump_json(data: Any) -> str:
    return json.dumps(data, **STANDARD_JSON_FORMAT)


def _write_json(filepath: Path, data: Any) -> Path:
    """Writes a JSON file, replacing any existing file."""
    with open(filepath, "w") as file:
        file.write(_dump_json(data))
    return filepath


def _write_json_atomic(filepath: Path, data: Any) -> Path:
    """Writes a JSON file through a temporary sibling so readers never see a partial file."""
    filepath.parent.mkdir(parents=True, exist_ok=True)
    temp_filepath = filepath.with_suffix(".temp.json")
    try:
        _write_json(temp_filepath, data)
        os.replace(temp_filepath, filepath)
    finally:
        if temp_filepath.exists():
            temp_filepath.unlink()
    return filepath


def resolve_path(path: Union[str, Path], cwd: Optional[Path] = None) -> Path:
    """Returns path unchanged if absolute, otherwise relative to cwd (default: process cwd)."""
    path = Path(path)
    if path.is_absolute():
        return path
    return Path(cwd or Path.cwd()) / path
