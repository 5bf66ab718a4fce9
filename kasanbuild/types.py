"""Shared type definitions for kasanbuild.

This module contains enums and dataclasses shared across subpackages
to avoid circular imports.
"""

from dataclasses import dataclass, field
from enum import Enum


class BuildPhase(str, Enum):
    """External build.sh invocation phase."""

    TOOLS = "tools"
    KERNEL = "kernel"


class ArtifactKind(str, Enum):
    """Kind of a collected build artifact."""

    KERNEL = "kernel"
    KERNEL_DEBUG = "kernel_debug"
    DISK_IMAGE = "disk_image"
    SSH_KEY = "ssh_key"


@dataclass
class ArtifactInfo:
    """Information about a collected artifact."""

    filename: str
    size_bytes: int
    sha256: str
    kind: str | None = None
    labels: list[str] = field(default_factory=list)


__all__ = [
    "ArtifactInfo",
    "ArtifactKind",
    "BuildPhase",
]
