"""Pydantic model for kernel build requests.

A BuildRequest is immutable once validated. It can be constructed
directly, from CLI flags, or loaded from a YAML/JSON file.
"""

import re
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, field_validator

# Architecture names are used as path components and build.sh -m values
ARCH_PATTERN = re.compile(r"^[a-z0-9_]+$")


class BuildRequest(BaseModel):
    """Input of a kernel build.

    Attributes:
        target_arch: Target architecture (sys/arch/<arch>, build.sh -m).
        vm_type: Deployment VM type; decides whether the disk image
            receives the built kernel.
        kernel_dir: Kernel source tree root containing build.sh.
        output_dir: Directory receiving the collected artifacts.
        compiler: Compiler identifier.
        userspace_dir: Directory holding the disk image and SSH key.
        cmdline_file: Optional kernel command line file.
        sysctl_file: Optional sysctl file.
        kernel_config: Raw kernel configuration bytes.
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    target_arch: str = Field(description="Target architecture, e.g. amd64")
    vm_type: str = Field(description="Deployment VM type, e.g. qemu or gce")
    kernel_dir: Path = Field(description="Kernel source directory")
    output_dir: Path = Field(description="Artifact output directory")
    compiler: str = Field(default="gcc", description="Compiler identifier")
    userspace_dir: Path = Field(description="Disk image and key directory")
    cmdline_file: Path | None = Field(default=None)
    sysctl_file: Path | None = Field(default=None)
    kernel_config: bytes = Field(default=b"", description="Raw kernel config")

    @field_validator("target_arch")
    @classmethod
    def validate_target_arch(cls, v: str) -> str:
        """Validate the architecture is a plain lowercase identifier."""
        if not ARCH_PATTERN.match(v):
            raise ValueError(
                f"target_arch must match {ARCH_PATTERN.pattern}, got '{v}'"
            )
        return v

    @field_validator("vm_type")
    @classmethod
    def validate_vm_type(cls, v: str) -> str:
        """Validate vm_type is not empty."""
        if not v.strip():
            raise ValueError("vm_type must not be empty")
        return v


__all__ = ["ARCH_PATTERN", "BuildRequest"]
