"""Errors raised by the kernel build service.

Every error carries a stable ``code`` for programmatic handling (CLI JSON
output, callers deciding whether to retry).
"""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from kasanbuild.builds.runner import BuildExecutionError


class BuildServiceError(Exception):
    """Base error for build service operations."""

    def __init__(self, message: str, code: str = "build_service_error") -> None:
        super().__init__(message)
        self.code = code


class ConfigWriteError(BuildServiceError):
    """The hardened kernel config fragment could not be written."""

    def __init__(self, path: Path, reason: str) -> None:
        super().__init__(
            f"Failed to write kernel config {path}: {reason}",
            code="config_write_error",
        )
        self.path = path


class PhaseBuildError(BuildServiceError):
    """A build.sh phase failed.

    The message is the extracted root cause only. The raw output stays
    reachable through ``root_cause.output``.

    Attributes:
        phase: Failed phase name.
        root_cause: Reduced execution error (timeout, exit or start failure).
        guilty_file: Source file blamed by the root cause, if any.
    """

    phase = "build"

    def __init__(self, root_cause: BuildExecutionError) -> None:
        super().__init__(str(root_cause), code=f"{self.phase}_build_failed")
        self.root_cause = root_cause
        self.guilty_file = root_cause.guilty_file

    @property
    def failure_code(self) -> str:
        """Code of the underlying execution failure."""
        return self.root_cause.code


class ToolBuildError(PhaseBuildError):
    """`build.sh tools` failed."""

    phase = "tools"


class KernelBuildError(PhaseBuildError):
    """`build.sh kernel=...` failed."""

    phase = "kernel"


class ArtifactCopyError(BuildServiceError):
    """A build artifact could not be copied to the output directory."""

    def __init__(self, source: Path, destination: Path, reason: str) -> None:
        super().__init__(
            f"Failed to copy {source} -> {destination}: {reason}",
            code="artifact_copy_error",
        )
        self.source = source
        self.destination = destination


__all__ = [
    "ArtifactCopyError",
    "BuildServiceError",
    "ConfigWriteError",
    "KernelBuildError",
    "PhaseBuildError",
    "ToolBuildError",
]
