"""Artifact collection and manifest generation.

This module handles:
- The fixed artifact set of a kernel build (kernel, debug kernel,
  disk image, SSH key)
- Copying artifacts into the output directory, all or nothing
- Computing checksums and writing a build manifest
"""

from __future__ import annotations

import hashlib
import json
import logging
from collections.abc import Iterable
from dataclasses import asdict, dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import TYPE_CHECKING, Any

from kasanbuild.builds.errors import ArtifactCopyError
from kasanbuild.builds.kconfig import compile_dir
from kasanbuild.fs import LocalFilesystem
from kasanbuild.types import ArtifactInfo, ArtifactKind

if TYPE_CHECKING:
    from kasanbuild.builds.schema import BuildRequest
    from kasanbuild.fs import Filesystem

logger = logging.getLogger(__name__)

KERNEL_FILENAME = "netbsd"
KERNEL_DEBUG_FILENAME = "netbsd.gdb"
IMAGE_FILENAME = "image"
KEY_FILENAME = "key"

ARTIFACT_KINDS = {
    KERNEL_FILENAME: ArtifactKind.KERNEL,
    KERNEL_DEBUG_FILENAME: ArtifactKind.KERNEL_DEBUG,
    IMAGE_FILENAME: ArtifactKind.DISK_IMAGE,
    KEY_FILENAME: ArtifactKind.SSH_KEY,
}

# Default chunk size for hashing
HASH_CHUNK_SIZE = 64 * 1024  # 64KB


@dataclass(frozen=True)
class Artifact:
    """A required build output: where it comes from and its file name."""

    source_dir: Path
    filename: str

    @property
    def source(self) -> Path:
        return self.source_dir / self.filename

    def destination(self, output_dir: Path) -> Path:
        return output_dir / self.filename


def kernel_artifacts(request: BuildRequest) -> list[Artifact]:
    """Return the fixed artifact set of a kernel build.

    Args:
        request: Build request.

    Returns:
        Kernel and debug kernel from the compile directory, disk image and
        SSH key from the userspace directory.
    """
    kernel_obj_dir = compile_dir(request.kernel_dir, request.target_arch)
    return [
        Artifact(kernel_obj_dir, KERNEL_FILENAME),
        Artifact(kernel_obj_dir, KERNEL_DEBUG_FILENAME),
        Artifact(request.userspace_dir, IMAGE_FILENAME),
        Artifact(request.userspace_dir, KEY_FILENAME),
    ]


def copy_artifacts(
    artifacts: Iterable[Artifact],
    output_dir: Path,
    fs: Filesystem | None = None,
) -> list[Path]:
    """Copy artifacts into output_dir under their original file names.

    The first failure aborts the remaining copies.

    Args:
        artifacts: Artifacts to copy, in order.
        output_dir: Destination directory.
        fs: Filesystem to copy through.

    Returns:
        Destination paths of the copied artifacts.

    Raises:
        ArtifactCopyError: If any copy fails.
    """
    if fs is None:
        fs = LocalFilesystem()

    copied: list[Path] = []
    for artifact in artifacts:
        src = artifact.source
        dst = artifact.destination(output_dir)
        try:
            fs.copy_file(src, dst)
        except OSError as e:
            logger.error("Failed to copy artifact %s -> %s: %s", src, dst, e)
            raise ArtifactCopyError(src, dst, str(e)) from e
        logger.debug("Collected artifact %s", dst)
        copied.append(dst)

    logger.info("Collected %d artifacts into %s", len(copied), output_dir)
    return copied


def compute_file_hash(
    file_path: Path,
    chunk_size: int = HASH_CHUNK_SIZE,
) -> str:
    """Compute SHA-256 hash of a file.

    Args:
        file_path: Path to the file.
        chunk_size: Size of chunks for streaming hash.

    Returns:
        SHA-256 hex digest.
    """
    sha256 = hashlib.sha256()
    with file_path.open("rb") as f:
        while chunk := f.read(chunk_size):
            sha256.update(chunk)
    return sha256.hexdigest()


def describe_artifacts(paths: Iterable[Path]) -> list[ArtifactInfo]:
    """Describe collected artifacts for the manifest."""
    infos: list[ArtifactInfo] = []
    for path in paths:
        kind = ARTIFACT_KINDS.get(path.name)
        info = ArtifactInfo(
            filename=path.name,
            size_bytes=path.stat().st_size,
            sha256=compute_file_hash(path),
            kind=kind.value if kind else None,
        )
        if kind == ArtifactKind.KERNEL:
            info.labels.append("boot_kernel")
        if kind == ArtifactKind.KERNEL_DEBUG:
            info.labels.append("symbols")
        infos.append(info)
    return infos


def generate_manifest(
    artifacts: list[ArtifactInfo],
    target_arch: str | None = None,
    kernel_config: str | None = None,
    build_inputs: dict[str, Any] | None = None,
) -> dict[str, Any]:
    """Generate a build manifest.

    Args:
        artifacts: Described artifacts.
        target_arch: Target architecture.
        kernel_config: Name of the kernel configuration built.
        build_inputs: Optional build inputs dictionary.

    Returns:
        Manifest dictionary suitable for JSON serialization.
    """
    now = datetime.now(timezone.utc)

    manifest: dict[str, Any] = {
        "version": "1.0",
        "generated_at": now.isoformat(),
        "artifacts": [asdict(a) for a in artifacts],
    }

    if target_arch:
        manifest["target_arch"] = target_arch
    if kernel_config:
        manifest["kernel_config"] = kernel_config
    if build_inputs:
        manifest["build_inputs"] = build_inputs

    manifest["summary"] = {
        "total_artifacts": len(artifacts),
        "total_size_bytes": sum(a.size_bytes for a in artifacts),
    }

    return manifest


def write_manifest(
    manifest: dict[str, Any],
    output_path: Path,
    fs: Filesystem | None = None,
) -> Path:
    """Write manifest to a JSON file.

    Args:
        manifest: Manifest dictionary.
        output_path: Output file path.
        fs: Filesystem to write through.

    Returns:
        Path to written manifest file.

    Raises:
        OSError: If the file cannot be written.
    """
    if fs is None:
        fs = LocalFilesystem()

    data = json.dumps(manifest, indent=2, sort_keys=True)
    fs.write_file(output_path, data.encode("utf-8"))

    logger.info("Wrote manifest to %s", output_path)
    return output_path


__all__ = [
    "ARTIFACT_KINDS",
    "Artifact",
    "HASH_CHUNK_SIZE",
    "IMAGE_FILENAME",
    "KERNEL_DEBUG_FILENAME",
    "KERNEL_FILENAME",
    "KEY_FILENAME",
    "compute_file_hash",
    "copy_artifacts",
    "describe_artifacts",
    "generate_manifest",
    "kernel_artifacts",
    "write_manifest",
]
