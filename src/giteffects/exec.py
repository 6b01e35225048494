"""Run fixed-argv commands with captured text output and a timeout."""

import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

TIMEOUT_RETURNCODE = 124


@dataclass(frozen=True)
class CommandRequest:
    argv: tuple[str, ...]
    cwd: Path | None = None
    timeout_seconds: float | None = None


@dataclass(frozen=True)
class CommandResult:
    argv: tuple[str, ...]
    returncode: int
    stdout: str
    stderr: str
    timed_out: bool = False

    @property
    def ok(self) -> bool:
        return self.returncode == 0 and not self.timed_out


class CommandRunner(Protocol):
    """Runs a request; returns ``None`` when the executable is missing."""

    def run(self, request: CommandRequest) -> CommandResult | None: ...


class SubprocessCommandRunner:
    def run(self, request: CommandRequest) -> CommandResult | None:
        try:
            completed = subprocess.run(
                list(request.argv),
                cwd=request.cwd,
                capture_output=True,
                text=True,
                timeout=request.timeout_seconds,
                check=False,
            )
        except FileNotFoundError:
            return None
        except subprocess.TimeoutExpired as exc:
            return CommandResult(
                argv=request.argv,
                returncode=TIMEOUT_RETURNCODE,
                stdout=exc.stdout if isinstance(exc.stdout, str) else "",
                stderr=exc.stderr if isinstance(exc.stderr, str) else "",
                timed_out=True,
            )
        return CommandResult(
            argv=request.argv,
            returncode=completed.returncode,
            stdout=completed.stdout or "",
            stderr=completed.stderr or "",
        )


_DEFAULT_RUNNER: CommandRunner = SubprocessCommandRunner()


def run_command(
    request: CommandRequest, *, runner: CommandRunner | None = None
) -> CommandResult | None:
    """Run ``request`` with ``runner`` or the subprocess-backed default."""
    return (runner or _DEFAULT_RUNNER).run(request)
