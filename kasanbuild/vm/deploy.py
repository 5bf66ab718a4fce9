"""Kernel deployment into a disk image through a VM.

The freshly built kernel replaces the one inside the collected disk image:
the image is booted in a single-instance VM pool, the kernel is copied to
the guest's boot location and ``sync`` makes the write durable before the
instance is released.

Steps, each with its own error:
1. pool creation        -> VMPoolCreationError
2. instance 0           -> VMInstanceCreationError
3. kernel injection     -> KernelInjectionError
4. sync                 -> SyncCommandError
5. release (always, exactly once after step 2 succeeded)

Any exception a backend raises during a step is wrapped in that step's
error. Nothing is retried.
"""

from __future__ import annotations

import contextlib
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING

from kasanbuild.builds.artifacts import IMAGE_FILENAME, KERNEL_FILENAME, KEY_FILENAME
from kasanbuild.config import get_settings
from kasanbuild.vm import registry
from kasanbuild.vm.models import QemuSettings, VMDeploymentConfig

if TYPE_CHECKING:
    from kasanbuild.config import Settings
    from kasanbuild.vm.base import PoolFactory

logger = logging.getLogger(__name__)

DEPLOY_TARGET_OS = "netbsd"
DEPLOY_VM_ARCH = "amd64"
DEPLOY_BACKEND_TYPE = "qemu"
SYNC_COMMAND = "sync"


class DeploymentError(Exception):
    """Base error for kernel deployment."""

    def __init__(self, message: str, code: str = "deployment_error") -> None:
        super().__init__(message)
        self.code = code


class VMPoolCreationError(DeploymentError):
    """The VM pool could not be created."""

    def __init__(self, cause: Exception) -> None:
        super().__init__(
            f"Failed to create a VM pool: {cause}", code="vm_pool_error"
        )
        self.cause = cause


class VMInstanceCreationError(DeploymentError):
    """The VM instance could not be created."""

    def __init__(self, cause: Exception) -> None:
        super().__init__(
            f"Failed to create the VM instance: {cause}", code="vm_instance_error"
        )
        self.cause = cause


class KernelInjectionError(DeploymentError):
    """The kernel could not be copied into the VM."""

    def __init__(self, kernel_path: Path, cause: Exception) -> None:
        super().__init__(
            f"Failed to copy kernel {kernel_path} into the VM: {cause}",
            code="kernel_injection_error",
        )
        self.kernel_path = kernel_path
        self.cause = cause


class SyncCommandError(DeploymentError):
    """The sync command failed inside the VM."""

    def __init__(self, stdout: str, stderr: str, cause: Exception) -> None:
        super().__init__(
            f"Failed to sync the kernel: {cause}\n"
            f"stdout:\n{stdout}\nstderr:\n{stderr}",
            code="sync_error",
        )
        self.stdout = stdout
        self.stderr = stderr
        self.cause = cause


@dataclass
class DeployResult:
    """Result of a kernel deployment.

    Attributes:
        remote_kernel_path: Kernel path inside the guest.
        sync_stdout: Output of the sync command.
        sync_stderr: Error output of the sync command.
    """

    remote_kernel_path: str
    sync_stdout: str = ""
    sync_stderr: str = ""


def make_deployment_config(
    output_dir: Path,
    settings: Settings | None = None,
) -> VMDeploymentConfig:
    """Describe a one-CPU, one-instance VM booting the collected image.

    Args:
        output_dir: Directory holding the collected image and key.
        settings: Application settings.

    Returns:
        VMDeploymentConfig for the deployment.
    """
    if settings is None:
        settings = get_settings()

    return VMDeploymentConfig(
        backend=settings.qemu_binary,
        cpu=1,
        count=1,
        mem=settings.vm_memory_mb,
        workdir=output_dir,
        image=output_dir / IMAGE_FILENAME,
        ssh_key=output_dir / KEY_FILENAME,
        ssh_user=settings.ssh_user,
        target_os=DEPLOY_TARGET_OS,
        target_vm_arch=DEPLOY_VM_ARCH,
        type=DEPLOY_BACKEND_TYPE,
        # changes to the image must persist
        vm=QemuSettings(snapshot=False),
    )


def deploy_kernel(
    output_dir: Path,
    settings: Settings | None = None,
    pool_factory: PoolFactory | None = None,
) -> DeployResult:
    """Copy the built kernel into the disk image through a VM.

    Args:
        output_dir: Directory holding the collected artifacts.
        settings: Application settings.
        pool_factory: Pool factory; the backend registry is used if not set.

    Returns:
        DeployResult describing the injected kernel.

    Raises:
        VMPoolCreationError: If the pool cannot be created.
        VMInstanceCreationError: If instance 0 cannot be created.
        KernelInjectionError: If the kernel cannot be copied into the VM.
        SyncCommandError: If sync fails in the VM.
    """
    if settings is None:
        settings = get_settings()
    if pool_factory is None:
        pool_factory = registry.create_pool

    config = make_deployment_config(output_dir, settings)
    logger.info(
        "Deploying kernel from %s via %s VM (%s)",
        output_dir,
        config.type,
        config.backend,
    )

    try:
        pool = pool_factory(config, True)
    except Exception as e:
        logger.error("VM pool creation failed: %s", e)
        raise VMPoolCreationError(e) from e

    try:
        instance = pool.create_instance(0)
    except Exception as e:
        logger.error("VM instance creation failed: %s", e)
        raise VMInstanceCreationError(e) from e

    kernel_path = output_dir / KERNEL_FILENAME
    with contextlib.closing(instance):
        try:
            remote_path = instance.copy_into(kernel_path)
        except Exception as e:
            logger.error("Kernel injection failed: %s", e)
            raise KernelInjectionError(kernel_path, e) from e
        logger.info("Copied kernel into the VM at %s", remote_path)

        try:
            stdout, stderr = instance.run(settings.sync_timeout, None, SYNC_COMMAND)
        except Exception as e:
            logger.error("Sync in the VM failed: %s", e)
            raise SyncCommandError(
                getattr(e, "stdout", ""), getattr(e, "stderr", ""), e
            ) from e

    logger.info("Kernel deployed into %s", config.image)
    return DeployResult(
        remote_kernel_path=remote_path,
        sync_stdout=stdout,
        sync_stderr=stderr,
    )


__all__ = [
    "DeployResult",
    "DeploymentError",
    "KernelInjectionError",
    "SyncCommandError",
    "VMInstanceCreationError",
    "VMPoolCreationError",
    "deploy_kernel",
    "make_deployment_config",
]
