import subprocess

import pytest

from ckb_deployment.config import ProjectConfig
from ckb_deployment.errors import DeploymentError, MissingDependency, WorkspaceNotFound
from ckb_deployment.workspace import (
    build_contracts,
    check_environment,
    get_workspace,
    init_project,
    new_contract,
)


@pytest.fixture
def commands(monkeypatch):
    recorded = []

    def fake_run(command, cwd, check):
        recorded.append((command, cwd))
        if command[:2] == ["capsule", "new"]:
            project = cwd / command[2]
            (project / ".git").mkdir(parents=True)
            (project / "Cargo.toml").write_text("[workspace]\n")

    monkeypatch.setattr("ckb_deployment.workspace.subprocess.run", fake_run)
    return recorded


def test_workspace_defaults_to_contract_directory(tmp_path):
    config = ProjectConfig({"ckb_chain": {"rpc_url": "http://localhost:8114"}}, path=tmp_path / "ckb-deployment.yml")
    assert get_workspace(config) == tmp_path / "contract"


def test_configured_workspace(tmp_path):
    config = ProjectConfig(
        {"ckb_chain": {"rpc_url": "http://localhost:8114"}, "contract": {"workspace": "/opt/contracts"}},
        path=tmp_path / "ckb-deployment.yml",
    )
    assert str(get_workspace(config)) == "/opt/contracts"


def test_no_project():
    with pytest.raises(WorkspaceNotFound):
        get_workspace(None)


def test_build(tmp_path, commands):
    build_contracts(tmp_path, name="foo", release=True)
    assert commands == [(["capsule", "build", "--name", "foo", "--release"], tmp_path)]


def test_build_all(tmp_path, commands):
    build_contracts(tmp_path)
    assert commands == [(["capsule", "build"], tmp_path)]


def test_new_contract(tmp_path, commands):
    new_contract(tmp_path, name="foo", template="c")
    assert commands == [(["capsule", "new-contract", "foo", "--template", "c"], tmp_path)]


def test_init_project(tmp_path, commands):
    workspace = tmp_path / "contract"
    init_project(workspace, name="demo")

    assert commands == [(["capsule", "new", "demo", "--template", "rust"], tmp_path)]
    assert (workspace / "Cargo.toml").exists()
    assert not (workspace / ".git").exists()
    assert not (tmp_path / "demo").exists()


def test_init_project_refuses_existing_directory(tmp_path, commands):
    (tmp_path / "demo").mkdir()
    with pytest.raises(DeploymentError):
        init_project(tmp_path / "contract", name="demo")
    assert commands == []


def test_missing_capsule(tmp_path, monkeypatch):
    def fake_run(command, cwd, check):
        raise FileNotFoundError(command[0])

    monkeypatch.setattr("ckb_deployment.workspace.subprocess.run", fake_run)
    with pytest.raises(MissingDependency):
        build_contracts(tmp_path)


def test_failing_command(tmp_path, monkeypatch):
    def fake_run(command, cwd, check):
        raise subprocess.CalledProcessError(101, command)

    monkeypatch.setattr("ckb_deployment.workspace.subprocess.run", fake_run)
    with pytest.raises(DeploymentError, match="status 101"):
        build_contracts(tmp_path)


def test_check_environment(monkeypatch):
    monkeypatch.setattr(
        "ckb_deployment.workspace.shutil.which",
        lambda tool: "/usr/local/bin/ckb-cli" if tool == "ckb-cli" else None,
    )
    assert check_environment() == {"ckb-cli": "/usr/local/bin/ckb-cli", "capsule": None}
