"""Kernel build module.

This module handles:
- The hardened (KASAN) kernel config fragment
- Running the build.sh tools and kernel phases
- Root-cause extraction from failed build output
- Artifact collection and manifest generation
"""

from kasanbuild.builds.errors import (
    ArtifactCopyError,
    BuildServiceError,
    ConfigWriteError,
    KernelBuildError,
    PhaseBuildError,
    ToolBuildError,
)
from kasanbuild.builds.schema import BuildRequest

__all__ = [
    "ArtifactCopyError",
    "BuildRequest",
    "BuildServiceError",
    "ConfigWriteError",
    "KernelBuildError",
    "PhaseBuildError",
    "ToolBuildError",
]

# Lazy imports for submodules to avoid circular imports
# Access via kasanbuild.builds.service, etc.
