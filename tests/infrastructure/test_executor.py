"""Tests for TerraformExecutor: subprocess calls are patched."""

from __future__ import annotations

import json
import subprocess
import sys
from pathlib import Path
from typing import Any
from unittest.mock import MagicMock, patch

import pytest

from pangea.domain.errors import ExecutionError, ExecutionTimeoutError
from pangea.infrastructure.executor import (
    TerraformExecutor,
    extract_error,
    parse_apply_summary,
)


def _completed(returncode: int = 0, stdout: str = "", stderr: str = "") -> MagicMock:
    proc = MagicMock()
    proc.returncode = returncode
    proc.stdout = stdout
    proc.stderr = stderr
    return proc


@pytest.fixture
def executor(tmp_path: Path) -> TerraformExecutor:
    return TerraformExecutor(tmp_path / "work", binary="tofu", timeout=30)


class TestRun:
    def test_command_and_cwd(self, executor: TerraformExecutor) -> None:
        with patch("pangea.infrastructure.executor.subprocess.run") as run:
            run.return_value = _completed()
            executor.init()
        args, kwargs = run.call_args
        assert args[0] == ["tofu", "init", "-no-color", "-input=false"]
        assert kwargs["cwd"] == executor.working_dir
        assert kwargs["timeout"] == 30
        assert executor.working_dir.is_dir()

    def test_failure_keeps_streams_verbatim(self, executor: TerraformExecutor) -> None:
        stderr = "\nError: Invalid provider configuration\n\n  detail line\n"
        with patch("pangea.infrastructure.executor.subprocess.run") as run:
            run.return_value = _completed(1, stdout="Initializing...\n", stderr=stderr)
            with pytest.raises(ExecutionError) as exc_info:
                executor.apply()
        err = exc_info.value
        assert err.exit_code == 1
        assert err.stdout == "Initializing...\n"
        assert err.stderr == stderr
        assert "Invalid provider configuration" in err.message
        assert err.command[:2] == ["tofu", "apply"]

    def test_timeout(self, executor: TerraformExecutor) -> None:
        with patch("pangea.infrastructure.executor.subprocess.run") as run:
            run.side_effect = subprocess.TimeoutExpired(cmd=["tofu"], timeout=30, output=b"half")
            with pytest.raises(ExecutionTimeoutError) as exc_info:
                executor.apply()
        assert exc_info.value.exit_code is None
        assert exc_info.value.stdout == "half"

    def test_missing_binary(self, executor: TerraformExecutor) -> None:
        with patch("pangea.infrastructure.executor.subprocess.run") as run:
            run.side_effect = FileNotFoundError("tofu")
            with pytest.raises(ExecutionError, match="Could not run"):
                executor.init()

    def test_zero_timeout_disables(self, tmp_path: Path) -> None:
        assert TerraformExecutor(tmp_path, timeout=0).timeout is None

    def test_no_retry(self, executor: TerraformExecutor) -> None:
        with patch("pangea.infrastructure.executor.subprocess.run") as run:
            run.return_value = _completed(1, stderr="Error: throttled")
            with pytest.raises(ExecutionError):
                executor.apply()
        assert run.call_count == 1


class TestCommands:
    def test_plan_exit_codes(self, executor: TerraformExecutor) -> None:
        with patch("pangea.infrastructure.executor.subprocess.run") as run:
            run.return_value = _completed(2)
            assert executor.plan().summary["changes"] is True
            run.return_value = _completed(0)
            assert executor.plan().summary["changes"] is False
            run.return_value = _completed(1, stderr="Error: bad")
            with pytest.raises(ExecutionError):
                executor.plan()
        assert "-detailed-exitcode" in run.call_args[0][0]

    def test_apply_auto_approve_and_summary(self, executor: TerraformExecutor) -> None:
        with patch("pangea.infrastructure.executor.subprocess.run") as run:
            run.return_value = _completed(stdout="Apply complete! Resources: 2 added, 1 changed, 0 destroyed.")
            result = executor.apply(auto_approve=True)
        assert "-auto-approve" in run.call_args[0][0]
        assert result.summary == {"added": 2, "changed": 1, "destroyed": 0}

    def test_apply_without_auto_approve(self, executor: TerraformExecutor) -> None:
        with patch("pangea.infrastructure.executor.subprocess.run") as run:
            run.return_value = _completed()
            executor.apply(auto_approve=False)
        assert "-auto-approve" not in run.call_args[0][0]

    def test_destroy(self, executor: TerraformExecutor) -> None:
        with patch("pangea.infrastructure.executor.subprocess.run") as run:
            run.return_value = _completed(stdout="Destroy complete! Resources: 0 added, 0 changed, 3 destroyed.")
            result = executor.destroy()
        assert run.call_args[0][0][:2] == ["tofu", "destroy"]
        assert "-auto-approve" in run.call_args[0][0]
        assert result.summary["destroyed"] == 3

    def test_output_values(self, executor: TerraformExecutor) -> None:
        raw: dict[str, Any] = {
            "vpc_id": {"value": "vpc-1", "type": "string", "sensitive": False},
            "subnet_ids": {"value": ["a", "b"], "type": ["list", "string"]},
        }
        with patch("pangea.infrastructure.executor.subprocess.run") as run:
            run.return_value = _completed(stdout=json.dumps(raw))
            assert executor.output() == {"vpc_id": "vpc-1", "subnet_ids": ["a", "b"]}

    def test_output_empty(self, executor: TerraformExecutor) -> None:
        with patch("pangea.infrastructure.executor.subprocess.run") as run:
            run.return_value = _completed(stdout="")
            assert executor.output() == {}

    def test_output_bad_json(self, executor: TerraformExecutor) -> None:
        with patch("pangea.infrastructure.executor.subprocess.run") as run:
            run.return_value = _completed(stdout="not json")
            with pytest.raises(ExecutionError, match="parse JSON") as exc_info:
                executor.output()
        assert exc_info.value.stdout == "not json"

    def test_version(self, executor: TerraformExecutor) -> None:
        with patch("pangea.infrastructure.executor.subprocess.run") as run:
            run.return_value = _completed(stdout='{"terraform_version": "1.8.2"}')
            assert executor.version() == "1.8.2"
            run.return_value = _completed(stdout="OpenTofu v1.7.0\n")
            assert executor.version() == "1.7.0"

    def test_write_config(self, executor: TerraformExecutor) -> None:
        path = executor.write_config({"resource": {}})
        assert path.name == "main.tf.json"
        assert json.loads(path.read_text(encoding="utf-8")) == {"resource": {}}


class TestParsing:
    def test_extract_error_prefers_error_line(self) -> None:
        assert extract_error("noise\nError: No valid credential sources\nmore") == (
            "No valid credential sources"
        )

    def test_extract_error_falls_back_to_tail(self) -> None:
        output = "\n".join(f"line {i}" for i in range(10))
        assert extract_error(output).splitlines() == [f"line {i}" for i in range(5, 10)]

    def test_parse_apply_summary_missing(self) -> None:
        assert parse_apply_summary("No changes.") == {}


@pytest.mark.skipif(sys.platform == "win32", reason="uses a POSIX shell script as the binary")
class TestRealProcess:
    def _binary(self, tmp_path: Path, body: str) -> str:
        script = tmp_path / "fake-tofu"
        script.write_text(f"#!/bin/sh\n{body}\n", encoding="utf-8")
        script.chmod(0o755)
        return str(script)

    def test_undecodable_stderr_still_raises_execution_error(self, tmp_path: Path) -> None:
        binary = self._binary(tmp_path, r"printf 'bad \377\376 bytes' >&2; exit 1")
        executor = TerraformExecutor(tmp_path / "work", binary=binary, timeout=30)
        with pytest.raises(ExecutionError) as exc_info:
            executor.init()
        assert exc_info.value.exit_code == 1
        assert exc_info.value.stderr.startswith("bad ")
        assert "�" in exc_info.value.stderr

    def test_undecodable_stdout_on_success(self, tmp_path: Path) -> None:
        binary = self._binary(tmp_path, r"printf 'ok \377'; exit 0")
        result = TerraformExecutor(tmp_path / "work", binary=binary).init()
        assert result.stdout == "ok �"
