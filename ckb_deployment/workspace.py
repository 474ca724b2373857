import shutil
import subprocess
from pathlib import Path
from typing import Dict, List, Optional

from ckb_deployment.config import ProjectConfig
from ckb_deployment.constants import (
    CAPSULE,
    DEFAULT_CONTRACT_TEMPLATE,
    REQUIRED_TOOLS,
    WORKSPACE_DIRNAME,
)
from ckb_deployment.errors import DeploymentError, MissingDependency, WorkspaceNotFound


def get_workspace(config: Optional[ProjectConfig]) -> Path:
    """The configured contract workspace, or the 'contract' directory next to the config file."""
    if config is None:
        raise WorkspaceNotFound("Please run in a project (no ckb-deployment.yml found).")
    if config.workspace:
        return config.workspace
    return config.root / WORKSPACE_DIRNAME


def _run(command: List[str], cwd: Path) -> None:
    print(f"(i) Running '{' '.join(command)}' in {cwd}")
    try:
        subprocess.run(command, cwd=cwd, check=True)
    except FileNotFoundError as e:
        raise MissingDependency(f"{command[0]} is not installed or not on PATH.") from e
    except subprocess.CalledProcessError as e:
        raise DeploymentError(f"'{' '.join(command)}' exited with status {e.returncode}.") from e


def build_contracts(workspace: Path, name: Optional[str] = None, release: bool = False) -> None:
    command = [CAPSULE, "build"]
    if name:
        command += ["--name", name]
    if release:
        command.append("--release")
    _run(command, cwd=workspace)


def new_contract(workspace: Path, name: str, template: str = DEFAULT_CONTRACT_TEMPLATE) -> None:
    _run([CAPSULE, "new-contract", name, "--template", template], cwd=workspace)


def init_project(workspace: Path, name: str, template: str = DEFAULT_CONTRACT_TEMPLATE) -> Path:
    """Scaffolds a capsule project beside the workspace and moves its contents into the workspace."""
    workspace = Path(workspace)
    workspace.parent.mkdir(parents=True, exist_ok=True)
    new_project_path = workspace.parent / name
    if new_project_path.exists():
        raise DeploymentError(f"Cannot scaffold {name}: {new_project_path} already exists.")

    _run([CAPSULE, "new", name, "--template", template], cwd=workspace.parent)
    try:
        shutil.rmtree(new_project_path / ".git", ignore_errors=True)
        shutil.copytree(new_project_path, workspace, dirs_exist_ok=True)
    finally:
        shutil.rmtree(new_project_path, ignore_errors=True)
    return workspace


def check_environment(tools: Optional[List[str]] = None) -> Dict[str, Optional[str]]:
    """Maps each required tool to its resolved executable path (None if missing)."""
    tools = tools or REQUIRED_TOOLS
    return {tool: shutil.which(tool) for tool in tools}
