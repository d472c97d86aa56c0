"""Provisioning-tool subprocess wrapper.

The provisioning binary (``tofu`` or ``terraform``) is a black box: each
call blocks until the process exits or the configured timeout expires.
Failures raise :class:`ExecutionError` carrying the captured stdout and
stderr verbatim. Nothing here retries; retry policy belongs to the tool.
"""

from __future__ import annotations

import json
import logging
import re
import subprocess
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from pangea.domain.errors import ExecutionError, ExecutionTimeoutError

logger = logging.getLogger(__name__)

CONFIG_FILENAME = "main.tf.json"

# ``plan -detailed-exitcode``: 0 = no changes, 2 = changes present
PLAN_NO_CHANGES = 0
PLAN_CHANGES = 2

_ERROR_PATTERNS = (
    re.compile(r"Error: (.+)"),
    re.compile(r"Failed to (.+)"),
)
_APPLY_SUMMARY = re.compile(r"(\d+) added, (\d+) changed, (\d+) destroyed")


@dataclass
class CommandResult:
    """Outcome of one successful provisioning-tool invocation."""

    command: list[str]
    exit_code: int
    stdout: str
    stderr: str
    summary: dict[str, Any] = field(default_factory=dict)


def _text(value: str | bytes | None) -> str:
    if value is None:
        return ""
    if isinstance(value, bytes):
        return value.decode("utf-8", errors="replace")
    return value


def extract_error(output: str) -> str:
    """Pull the most useful error line out of tool output."""
    for pattern in _ERROR_PATTERNS:
        match = pattern.search(output)
        if match:
            return match.group(1).strip()
    lines = [line for line in output.splitlines() if line.strip()]
    return "\n".join(lines[-5:])


def parse_apply_summary(output: str) -> dict[str, int]:
    """Parse ``N added, N changed, N destroyed`` from apply/destroy output."""
    match = _APPLY_SUMMARY.search(output)
    if not match:
        return {}
    added, changed, destroyed = (int(g) for g in match.groups())
    return {"added": added, "changed": changed, "destroyed": destroyed}


class TerraformExecutor:
    """Runs the provisioning binary inside one template's working directory."""

    def __init__(
        self,
        working_dir: Path,
        *,
        binary: str = "tofu",
        timeout: float | None = None,
    ) -> None:
        self.working_dir = working_dir
        self.binary = binary
        # 0 or None disables the timeout
        self.timeout = timeout or None

    # ------------------------------------------------------------------
    # Workspace files
    # ------------------------------------------------------------------

    def write_config(self, config: dict[str, Any]) -> Path:
        """Write the synthesized JSON config into the working directory."""
        self.working_dir.mkdir(parents=True, exist_ok=True)
        path = self.working_dir / CONFIG_FILENAME
        path.write_text(json.dumps(config, indent=2) + "\n", encoding="utf-8")
        return path

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    def version(self) -> str | None:
        result = self._run("version", "-json")
        try:
            return json.loads(result.stdout).get("terraform_version")
        except json.JSONDecodeError:
            match = re.search(r"v(\d+\.\d+\.\d+)", result.stdout)
            return match.group(1) if match else None

    def init(self, *, upgrade: bool = False) -> CommandResult:
        args = ["init", "-no-color", "-input=false"]
        if upgrade:
            args.append("-upgrade")
        return self._run(*args)

    def plan(self, *, destroy: bool = False, out_file: str | None = None) -> CommandResult:
        args = ["plan", "-no-color", "-input=false", "-detailed-exitcode"]
        if destroy:
            args.append("-destroy")
        if out_file:
            args.append(f"-out={out_file}")
        result = self._run(*args, ok_codes=(PLAN_NO_CHANGES, PLAN_CHANGES))
        result.summary["changes"] = result.exit_code == PLAN_CHANGES
        return result

    def apply(self, *, auto_approve: bool = True, plan_file: str | None = None) -> CommandResult:
        args = ["apply", "-no-color", "-input=false"]
        if plan_file:
            args.append(plan_file)
        elif auto_approve:
            args.append("-auto-approve")
        result = self._run(*args)
        result.summary.update(parse_apply_summary(result.stdout))
        return result

    def destroy(self, *, auto_approve: bool = True) -> CommandResult:
        args = ["destroy", "-no-color", "-input=false"]
        if auto_approve:
            args.append("-auto-approve")
        result = self._run(*args)
        result.summary.update(parse_apply_summary(result.stdout))
        return result

    def output(self) -> dict[str, Any]:
        """Return ``{name: value}`` from ``output -json``."""
        result = self._run("output", "-no-color", "-json")
        try:
            raw = json.loads(result.stdout or "{}")
        except json.JSONDecodeError as exc:
            msg = f"Failed to parse JSON output from {self.binary} output: {exc}"
            raise ExecutionError(
                msg,
                command=result.command,
                exit_code=result.exit_code,
                stdout=result.stdout,
                stderr=result.stderr,
            ) from exc
        return {
            name: item.get("value") if isinstance(item, dict) else item
            for name, item in raw.items()
        }

    # ------------------------------------------------------------------
    # Subprocess
    # ------------------------------------------------------------------

    def _run(self, *args: str, ok_codes: tuple[int, ...] = (0,)) -> CommandResult:
        """Run the binary, raising :class:`ExecutionError` on failure."""
        command = [self.binary, *args]
        logger.debug("Executing %s in %s", " ".join(command), self.working_dir)
        self.working_dir.mkdir(parents=True, exist_ok=True)
        try:
            proc = subprocess.run(
                command,
                cwd=self.working_dir,
                capture_output=True,
                text=True,
                encoding="utf-8",
                errors="replace",
                timeout=self.timeout,
                check=False,
            )
        except subprocess.TimeoutExpired as exc:
            msg = f"{' '.join(command)} timed out after {self.timeout}s"
            raise ExecutionTimeoutError(
                msg,
                command=command,
                exit_code=None,
                stdout=_text(exc.stdout),
                stderr=_text(exc.stderr),
            ) from exc
        except OSError as exc:
            msg = f"Could not run provisioning binary '{self.binary}': {exc}"
            raise ExecutionError(msg, command=command, exit_code=None) from exc

        if proc.returncode not in ok_codes:
            reason = extract_error(proc.stderr or proc.stdout)
            msg = f"{' '.join(command[:2])} failed with exit code {proc.returncode}: {reason}"
            raise ExecutionError(
                msg,
                command=command,
                exit_code=proc.returncode,
                stdout=proc.stdout,
                stderr=proc.stderr,
            )
        return CommandResult(
            command=command,
            exit_code=proc.returncode,
            stdout=proc.stdout,
            stderr=proc.stderr,
        )
