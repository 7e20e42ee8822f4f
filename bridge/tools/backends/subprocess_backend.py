# ==============================
# Subprocess Tool Backend
# ==============================
"""
Subprocess backend spawns one local command per invocation.

Rules:
- Arguments are passed as a discrete argv; a shell is never involved.
- stdin is closed; stdout/stderr are captured fully in memory.
- Exit code 0 -> Success (trimmed stdout, placeholder when empty).
- Nonzero exit / spawn fault / timeout -> Failure. Never raises.
"""

from __future__ import annotations

import subprocess
from typing import List, Optional

from bridge.config.schema import Settings
from bridge.contracts.tool_schema import (
    Arguments,
    Failure,
    Outcome,
    SubprocessStrategy,
    Success,
    ToolErrorCode,
)


EMPTY_OUTPUT_TEXT = "Command completed successfully (no output)"


def _decode(raw: Optional[bytes]) -> str:
    if not raw:
        return ""
    return raw.decode("utf-8", errors="replace")


class SubprocessToolBackend:
    name: str = "subprocess"

    def __init__(self, *, timeout_seconds: Optional[float] = 60.0) -> None:
        self.timeout_seconds = timeout_seconds

    @classmethod
    def from_settings(cls, settings: Settings) -> "SubprocessToolBackend":
        return cls(timeout_seconds=settings.limits.subprocess_timeout_seconds)

    def build_argv(self, strategy: SubprocessStrategy, arguments: Arguments) -> List[str]:
        args = [str(a) for a in strategy.args_builder(arguments)]
        return [strategy.command, *args]

    def run(self, strategy: SubprocessStrategy, arguments: Arguments) -> Outcome:
        argv = self.build_argv(strategy, arguments)
        command_line = " ".join(argv)

        try:
            proc = subprocess.run(
                argv,
                stdin=subprocess.DEVNULL,
                capture_output=True,
                shell=False,
                timeout=self.timeout_seconds,
                check=False,
            )
        except subprocess.TimeoutExpired:
            return Failure(
                code=ToolErrorCode.TIMEOUT,
                message=f"Command timed out after {self.timeout_seconds} seconds: {command_line}",
                details={"argv": argv},
            )
        except OSError as e:
            return Failure(
                code=ToolErrorCode.PROCESS_SPAWN,
                message=f"Failed to start {strategy.command}: {e.strerror or e}",
                details={"argv": argv, "errno": e.errno},
            )

        stdout = _decode(proc.stdout).strip()
        stderr = _decode(proc.stderr).strip()

        if proc.returncode != 0:
            cause = stderr or stdout or "no output"
            return Failure(
                code=ToolErrorCode.PROCESS_NONZERO_EXIT,
                message=f"Command failed: {command_line} (exit code {proc.returncode}): {cause}",
                details={"argv": argv, "exit_code": proc.returncode, "stderr": stderr[-2000:]},
            )

        return Success(text=stdout or EMPTY_OUTPUT_TEXT)
