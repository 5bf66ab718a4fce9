"""Kernel build service.

This module provides the high-level build API:
- build_kernel(): write the hardened config, build tools, build the
  kernel, collect artifacts and deploy when the VM type requires it
- clean(): intentionally does nothing

Phases run strictly in sequence and the first failure ends the build:
a failed phase never lets a later one start, and no deployment happens
unless every artifact was collected.

Calls share no state. Two builds may run concurrently as long as they do
not use the same kernel tree/architecture or output directory; callers
must serialise those.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING

from kasanbuild.builds.artifacts import (
    copy_artifacts,
    describe_artifacts,
    generate_manifest,
    kernel_artifacts,
    write_manifest,
)
from kasanbuild.builds.errors import (
    BuildServiceError,
    KernelBuildError,
    PhaseBuildError,
    ToolBuildError,
)
from kasanbuild.builds.kconfig import (
    KERNEL_CONFIG_NAME,
    generate_config_fragment,
    write_config_fragment,
)
from kasanbuild.builds.rootcause import extract_root_cause
from kasanbuild.builds.runner import (
    BuildExecutionError,
    compose_build_command,
    run_build_step,
)
from kasanbuild.config import get_settings
from kasanbuild.types import BuildPhase
from kasanbuild.vm.deploy import deploy_kernel

if TYPE_CHECKING:
    from kasanbuild.builds.schema import BuildRequest
    from kasanbuild.config import Settings
    from kasanbuild.fs import Filesystem
    from kasanbuild.vm.base import PoolFactory
    from kasanbuild.vm.deploy import DeployResult

logger = logging.getLogger(__name__)

MANIFEST_FILENAME = "manifest.json"
LOGS_DIRNAME = "logs"


@dataclass
class BuildOutcome:
    """Result of a successful kernel build.

    Attributes:
        output_dir: Directory holding the artifacts.
        artifacts: Paths of the collected artifacts.
        config_path: Path of the written kernel configuration.
        manifest_path: Path of the build manifest.
        deployment: Deployment result, if the kernel was deployed.
    """

    output_dir: Path
    config_path: Path
    artifacts: list[Path] = field(default_factory=list)
    manifest_path: Path | None = None
    deployment: DeployResult | None = None


def requires_deployment(vm_type: str, settings: Settings | None = None) -> bool:
    """Return whether builds for vm_type deploy the kernel into the image."""
    if settings is None:
        settings = get_settings()
    return vm_type in settings.deploy_vm_types


def _run_phase(
    phase: BuildPhase,
    target: str,
    request: BuildRequest,
    settings: Settings,
    error_cls: type[PhaseBuildError],
    fs: Filesystem | None = None,
) -> None:
    command = compose_build_command(
        request.target_arch, settings.effective_jobs(), target
    )
    log_path = (
        request.output_dir / LOGS_DIRNAME / f"{phase.value}.log"
        if settings.write_logs
        else None
    )
    try:
        result = run_build_step(
            command,
            request.kernel_dir,
            timeout=settings.build_timeout,
            log_path=log_path,
            fs=fs,
        )
    except BuildExecutionError as e:
        root_cause = extract_root_cause(e.output, e, kernel_dir=request.kernel_dir)
        logger.error("%s phase failed (%s): %s", phase.value, e.code, root_cause)
        raise error_cls(root_cause) from e
    logger.info("%s phase finished in %.1fs", phase.value, result.duration)


def build_kernel(
    request: BuildRequest,
    settings: Settings | None = None,
    fs: Filesystem | None = None,
    pool_factory: PoolFactory | None = None,
) -> BuildOutcome:
    """Build a KASAN kernel and collect (and possibly deploy) it.

    Args:
        request: Build request.
        settings: Application settings.
        fs: Filesystem every write of the build goes through: the
            config, phase logs, artifact copies and the manifest.
        pool_factory: VM pool factory for deployment; the backend
            registry is used if not set.

    Returns:
        BuildOutcome describing the artifacts.

    Raises:
        ConfigWriteError: If the kernel config cannot be written.
        ToolBuildError: If `build.sh tools` fails.
        KernelBuildError: If the kernel build fails.
        ArtifactCopyError: If an artifact cannot be collected.
        BuildServiceError: If the manifest cannot be written.
        DeploymentError: If deploying the kernel into the image fails.
    """
    if settings is None:
        settings = get_settings()

    logger.info(
        "Building %s kernel for %s in %s",
        KERNEL_CONFIG_NAME,
        request.target_arch,
        request.kernel_dir,
    )

    config_path = write_config_fragment(request.kernel_dir, request.target_arch, fs)

    _run_phase(BuildPhase.TOOLS, "tools", request, settings, ToolBuildError, fs)
    _run_phase(
        BuildPhase.KERNEL,
        f"kernel={KERNEL_CONFIG_NAME}",
        request,
        settings,
        KernelBuildError,
        fs,
    )

    copied = copy_artifacts(kernel_artifacts(request), request.output_dir, fs)
    outcome = BuildOutcome(
        output_dir=request.output_dir,
        config_path=config_path,
        artifacts=copied,
    )

    try:
        manifest = generate_manifest(
            describe_artifacts(copied),
            target_arch=request.target_arch,
            kernel_config=KERNEL_CONFIG_NAME,
            build_inputs={
                "vm_type": request.vm_type,
                "compiler": request.compiler,
                "config_fragment": generate_config_fragment(request.target_arch),
            },
        )
        outcome.manifest_path = write_manifest(
            manifest, request.output_dir / MANIFEST_FILENAME, fs
        )
    except OSError as e:
        raise BuildServiceError(
            f"Failed to write build manifest: {e}",
            code="manifest_write_error",
        ) from e

    if requires_deployment(request.vm_type, settings):
        outcome.deployment = deploy_kernel(
            request.output_dir,
            settings=settings,
            pool_factory=pool_factory,
        )

    logger.info("Kernel build finished, artifacts in %s", request.output_dir)
    return outcome


def clean(kernel_dir: Path, fs: Filesystem | None = None) -> None:
    """Clean a kernel tree. Does nothing.

    Incremental builds break when config files change, and selectively
    invalidating build state is not attempted: build_kernel rebuilds the
    kernel every time instead. The tree is never touched here.
    """
    logger.debug("Nothing to clean in %s", kernel_dir)


__all__ = [
    "LOGS_DIRNAME",
    "MANIFEST_FILENAME",
    "BuildOutcome",
    "build_kernel",
    "clean",
    "requires_deployment",
]
