"""Shared pytest fixtures and test helpers for pangea tests."""

from __future__ import annotations

import logging
import textwrap
from collections.abc import Iterator
from pathlib import Path
from typing import Any

import pytest
import structlog
from click.testing import CliRunner

from pangea.config.settings import PangeaSettings
from pangea.domain.errors import ExecutionError
from pangea.infrastructure.executor import CommandResult
from pangea.infrastructure.workspace import Workspace

# ---------------------------------------------------------------------------
# Template file used across compiler, service, and command tests
# ---------------------------------------------------------------------------

NETWORK_APP_TEMPLATES = '''\
from pangea import template


@template("network")
def network(ctx):
    """VPC and subnets."""
    ctx.resource("aws_vpc", "main", cidr_block="10.0.0.0/16")
    ctx.output("vpc_id", ctx.ref("aws_vpc", "main", "id"))
    ctx.output("subnet_ids", ["subnet-a", "subnet-b"])


@template("app")
def app(ctx):
    with ctx.remote_state("network") as rs:
        rs.outputs("vpc_id", "subnet_ids")
    ctx.resource(
        "aws_instance",
        "web",
        subnet_id=ctx.remote_state_ref("network", "subnet_ids", 0),
        tags={"vpc": ctx.remote_state_ref("network", "vpc_id")},
    )
    ctx.output("instance_id", ctx.ref("aws_instance", "web", "id"))
'''


def write_templates(directory: Path, source: str, name: str = "infrastructure.py") -> Path:
    """Write a template file into *directory* and return its path."""
    path = directory / name
    path.write_text(textwrap.dedent(source), encoding="utf-8")
    return path


# ---------------------------------------------------------------------------
# Fake provisioning tool
# ---------------------------------------------------------------------------


class FakeExecutor:
    """Stands in for TerraformExecutor, recording every call."""

    def __init__(self, working_dir: Path, tool: FakeTool) -> None:
        self.working_dir = working_dir
        self.tool = tool

    @property
    def template(self) -> str:
        return self.working_dir.name

    def _call(self, action: str) -> CommandResult:
        self.tool.calls.append((self.template, action))
        if self.tool.fail_on == (self.template, action):
            raise ExecutionError(
                f"{action} failed with exit code 1: boom",
                command=["tofu", action],
                exit_code=1,
                stdout="partial output",
                stderr="Error: boom",
            )
        return CommandResult(command=["tofu", action], exit_code=0, stdout="", stderr="")

    def write_config(self, config: dict[str, Any]) -> Path:
        self.tool.configs[self.template] = config
        return self.working_dir / "main.tf.json"

    def init(self, **_: Any) -> CommandResult:
        return self._call("init")

    def plan(self, **_: Any) -> CommandResult:
        result = self._call("plan")
        result.summary["changes"] = True
        return result

    def apply(self, **kwargs: Any) -> CommandResult:
        self.tool.apply_kwargs.append(kwargs)
        result = self._call("apply")
        result.summary.update({"added": 1, "changed": 0, "destroyed": 0})
        return result

    def output(self) -> dict[str, Any]:
        self._call("output")
        return dict(self.tool.outputs.get(self.template, {}))


class FakeTool:
    """Shared state behind all FakeExecutors of one workspace."""

    def __init__(self) -> None:
        self.calls: list[tuple[str, str]] = []
        self.configs: dict[str, dict[str, Any]] = {}
        self.outputs: dict[str, dict[str, Any]] = {}
        self.apply_kwargs: list[dict[str, Any]] = []
        self.fail_on: tuple[str, str] | None = None

    def factory(self, working_dir: Path) -> FakeExecutor:
        return FakeExecutor(working_dir, self)

    def actions(self, action: str) -> list[str]:
        return [template for template, a in self.calls if a == action]


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def cli_runner() -> CliRunner:
    """Provide a Click CLI test runner."""
    return CliRunner()


@pytest.fixture
def settings(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> PangeaSettings:
    """Settings rooted at tmp_path with a local-state ``dev`` namespace."""
    monkeypatch.delenv("PANGEA_CONFIG", raising=False)
    return PangeaSettings.from_cli(
        project_root=tmp_path,
        default_namespace="dev",
        namespaces={"dev": {"state": {"type": "local"}}},
    )


@pytest.fixture
def fake_tool() -> FakeTool:
    return FakeTool()


@pytest.fixture
def workspace(settings: PangeaSettings, fake_tool: FakeTool) -> Workspace:
    """Workspace whose executors are fakes sharing *fake_tool*."""
    return Workspace(settings, executor_factory=fake_tool.factory)


@pytest.fixture
def template_file(tmp_path: Path) -> Path:
    """The network/app template file."""
    return write_templates(tmp_path, NETWORK_APP_TEMPLATES)


@pytest.fixture
def _isolated_project(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    """Run CLI tests from a temp project with a pangea.toml."""
    monkeypatch.delenv("PANGEA_CONFIG", raising=False)
    (tmp_path / "pangea.toml").write_text(
        'default_namespace = "dev"\n\n[namespaces.dev.state]\ntype = "local"\n',
        encoding="utf-8",
    )
    monkeypatch.chdir(tmp_path)


@pytest.fixture(autouse=True)
def _restore_logging() -> Iterator[None]:
    """Undo configure_logging() calls made by CLI invocations."""
    root = logging.getLogger()
    handlers = root.handlers[:]
    root_level = root.level
    pangea_level = logging.getLogger("pangea").level
    yield
    root.handlers = handlers
    root.setLevel(root_level)
    logging.getLogger("pangea").setLevel(pangea_level)
    structlog.reset_defaults()
