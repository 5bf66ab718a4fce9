"""Interfaces of VM backends.

The deployment orchestrator only talks to these protocols, so any backend
(or a test double) providing them can be plugged in through the registry
or passed directly as a pool factory.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from pathlib import Path
from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from kasanbuild.vm.models import VMDeploymentConfig


class VMError(Exception):
    """Raised by backends when a VM operation fails.

    Attributes:
        stdout: Captured standard output of a failed command, if any.
        stderr: Captured standard error of a failed command, if any.
    """

    def __init__(self, message: str, stdout: str = "", stderr: str = "") -> None:
        super().__init__(message)
        self.stdout = stdout
        self.stderr = stderr


class VMInstance(Protocol):
    """A running VM supporting file injection and command execution."""

    def copy_into(self, local_path: Path) -> str:
        """Copy a host file into the VM, returning its path in the guest."""
        ...

    def run(
        self,
        timeout: float,
        env: Mapping[str, str] | None,
        command: str,
    ) -> tuple[str, str]:
        """Run a command in the VM, returning (stdout, stderr)."""
        ...

    def close(self) -> None:
        """Release the instance."""
        ...


class VMPool(Protocol):
    """Factory of VM instances sharing one configuration."""

    def create_instance(self, index: int) -> VMInstance: ...


PoolFactory = Callable[["VMDeploymentConfig", bool], VMPool]


__all__ = ["PoolFactory", "VMError", "VMInstance", "VMPool"]
