"""Build runner for executing build.sh phases.

This module handles:
- Composing `build.sh` commands for the tools and kernel phases
- Executing them with subprocess, stdout and stderr combined
- Enforcing the per-phase wall-clock timeout (the child is killed)
- Writing per-phase log files

Failures are raised as one of three BuildExecutionError subclasses so
that callers can tell a timeout, a non-zero exit and a failure to start
the process apart.
"""

from __future__ import annotations

import logging
import shlex
import subprocess
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import TYPE_CHECKING

from kasanbuild.fs import LocalFilesystem

if TYPE_CHECKING:
    from kasanbuild.fs import Filesystem

logger = logging.getLogger(__name__)

BUILD_SCRIPT = "./build.sh"


class BuildExecutionError(Exception):
    """Raised when a build phase fails."""

    default_code = "build_error"

    def __init__(
        self,
        message: str,
        exit_code: int | None = None,
        output: str = "",
        code: str | None = None,
        guilty_file: str | None = None,
    ) -> None:
        super().__init__(message)
        self.exit_code = exit_code
        self.output = output
        self.code = code or self.default_code
        self.guilty_file = guilty_file


class BuildTimeoutError(BuildExecutionError):
    """The phase exceeded its timeout and was killed."""

    default_code = "build_timeout"


class BuildExitError(BuildExecutionError):
    """The phase exited with a non-zero status."""

    default_code = "build_failed"


class BuildStartError(BuildExecutionError):
    """The phase could not be started."""

    default_code = "execution_error"


@dataclass
class StepResult:
    """Result of a successful build phase.

    Attributes:
        command: The command that was executed.
        output: Combined stdout/stderr.
        started_at: Phase start time.
        finished_at: Phase finish time.
        log_path: Path to the phase log file, if one was written.
    """

    command: str
    output: str
    started_at: datetime
    finished_at: datetime
    log_path: Path | None = None

    @property
    def duration(self) -> float:
        return (self.finished_at - self.started_at).total_seconds()


def compose_build_command(target_arch: str, jobs: int, target: str) -> list[str]:
    """Compose a `build.sh` command.

    Args:
        target_arch: Machine passed with -m.
        jobs: Parallelism hint passed with -j.
        target: Final build.sh target (``tools`` or ``kernel=<NAME>``).

    Returns:
        Command as list of strings suitable for subprocess.
    """
    return [
        BUILD_SCRIPT,
        "-m",
        target_arch,
        # unprivileged build, update (no clean) mode
        "-U",
        "-u",
        f"-j{jobs}",
        target,
    ]


def _as_text(data: str | bytes | None) -> str:
    if data is None:
        return ""
    if isinstance(data, bytes):
        return data.decode("utf-8", errors="replace")
    return data


def _write_log(
    fs: Filesystem,
    log_path: Path,
    cmd_str: str,
    cwd: Path,
    started_at: datetime,
    output: str,
    footer: str,
) -> Path | None:
    text = (
        f"# Command: {cmd_str}\n"
        f"# Started: {started_at.isoformat()}\n"
        f"# CWD: {cwd}\n"
        "# " + "=" * 70 + "\n\n"
        f"{output}\n{footer}"
    )
    try:
        fs.write_file(log_path, text.encode("utf-8"))
    except OSError as e:
        # the phase result is reported either way
        logger.warning("Failed to write build log %s: %s", log_path, e)
        return None
    return log_path


def run_build_step(
    command: list[str],
    kernel_dir: Path,
    timeout: int,
    log_path: Path | None = None,
    fs: Filesystem | None = None,
) -> StepResult:
    """Execute one build phase.

    Args:
        command: Command composed by compose_build_command.
        kernel_dir: Kernel source tree root (working directory).
        timeout: Wall-clock timeout in seconds.
        log_path: Optional file receiving the combined output. A log
            that cannot be written is skipped with a warning.
        fs: Filesystem the log is written through.

    Returns:
        StepResult for a phase that exited with status 0.

    Raises:
        BuildTimeoutError: If the phase exceeded the timeout.
        BuildExitError: If the phase exited with a non-zero status.
        BuildStartError: If the process could not be started.
    """
    if fs is None:
        fs = LocalFilesystem()

    cmd_str = shlex.join(command)
    logger.info("Executing build phase: %s", cmd_str)
    logger.info("Working directory: %s", kernel_dir)

    started_at = datetime.now(timezone.utc)

    try:
        result = subprocess.run(
            command,
            cwd=kernel_dir,
            stdout=subprocess.PIPE,
            stderr=subprocess.STDOUT,
            text=True,
            errors="replace",
            timeout=timeout,
            check=False,
        )
    except subprocess.TimeoutExpired as e:
        output = _as_text(e.output)
        message = f"Build phase timed out after {timeout} seconds: {cmd_str}"
        logger.error("%s", message)
        if log_path is not None:
            _write_log(
                fs,
                log_path,
                cmd_str,
                kernel_dir,
                started_at,
                output,
                f"# TIMEOUT after {timeout} seconds\n",
            )
        raise BuildTimeoutError(message, exit_code=-1, output=output) from e
    except OSError as e:
        message = f"Failed to execute {cmd_str}: {e}"
        logger.error("%s", message)
        raise BuildStartError(message) from e

    finished_at = datetime.now(timezone.utc)
    output = _as_text(result.stdout)
    exit_code = result.returncode

    if log_path is not None:
        duration = (finished_at - started_at).total_seconds()
        log_path = _write_log(
            fs,
            log_path,
            cmd_str,
            kernel_dir,
            started_at,
            output,
            f"# Finished: {finished_at.isoformat()}\n"
            f"# Exit code: {exit_code}\n"
            f"# Duration: {duration:.1f}s\n",
        )

    if exit_code != 0:
        message = f"Build phase failed with exit code {exit_code}: {cmd_str}"
        logger.error("%s", message)
        raise BuildExitError(message, exit_code=exit_code, output=output)

    return StepResult(
        command=cmd_str,
        output=output,
        started_at=started_at,
        finished_at=finished_at,
        log_path=log_path,
    )


__all__ = [
    "BUILD_SCRIPT",
    "BuildExecutionError",
    "BuildExitError",
    "BuildStartError",
    "BuildTimeoutError",
    "StepResult",
    "compose_build_command",
    "run_build_step",
]
