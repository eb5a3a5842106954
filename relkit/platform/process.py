"""Captured subprocess calls that report failure as a value.

Every git invocation goes through `run`. A non-zero exit, a timeout or an
executable that cannot be started all come back as `Err(ProcessError)`:

    match run(["git", "rev-parse", "HEAD"], cwd=repo_path, timeout=30.0):
        case Ok(stdout):
            head = stdout.strip()
        case Err(error):
            log(error.detail())
"""

from __future__ import annotations

import os
import subprocess
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from pathlib import Path

from relkit.core.result import Err, Ok, Result

__all__ = ["ProcessError", "run"]

# Exit code reported when there is no real one (spawn failure or timeout).
NO_EXIT_CODE = -1


@dataclass(frozen=True, slots=True)
class ProcessError:
    """A command that did not exit cleanly.

    `returncode` is NO_EXIT_CODE when the process never started or was
    killed after its timeout; `timed_out` tells the two apart.
    """

    command: tuple[str, ...]
    returncode: int
    stdout: str
    stderr: str
    timed_out: bool = False

    def detail(self) -> str:
        """Whatever the command said about its failure, else a summary."""
        for stream in (self.stderr, self.stdout):
            if text := stream.strip():
                return text
        return str(self)

    def __str__(self) -> str:
        shown = list(self.command[:3])
        if len(self.command) > 3:
            shown.append("...")
        return f"{' '.join(shown)} failed (exit {self.returncode})"


def _decoded(stream: str | bytes | None) -> str:
    if isinstance(stream, bytes):
        return stream.decode(errors="replace")
    return stream or ""


def run(
    cmd: Sequence[str],
    cwd: Path,
    env: Mapping[str, str] | None = None,
    *,
    timeout: float | None = None,
) -> Result[str, ProcessError]:
    """Run cmd in cwd and return its stdout.

    Args:
        cmd: Executable followed by its arguments.
        cwd: Working directory.
        env: Extra variables on top of os.environ.
        timeout: Seconds before the process is killed (None waits forever).
    """
    argv = tuple(cmd)
    try:
        proc = subprocess.run(
            argv,
            cwd=cwd,
            env={**os.environ, **env} if env else None,
            capture_output=True,
            text=True,
            timeout=timeout,
            check=False,
        )
    except subprocess.TimeoutExpired as e:
        return Err(
            ProcessError(
                argv,
                NO_EXIT_CODE,
                _decoded(e.stdout),
                f"timed out after {timeout}s",
                timed_out=True,
            )
        )
    except OSError as e:
        return Err(ProcessError(argv, NO_EXIT_CODE, "", str(e)))

    if proc.returncode:
        return Err(ProcessError(argv, proc.returncode, proc.stdout, proc.stderr))
    return Ok(proc.stdout)
