"""Hardened kernel configuration fragment.

The fragment includes the architecture's GENERIC configuration, turns on
KASAN and removes SVS, which cannot be combined with KASAN.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import TYPE_CHECKING

from kasanbuild.builds.errors import ConfigWriteError
from kasanbuild.fs import LocalFilesystem

if TYPE_CHECKING:
    from kasanbuild.fs import Filesystem

logger = logging.getLogger(__name__)

# Name of the kernel configuration written into sys/arch/<arch>/conf
KERNEL_CONFIG_NAME = "GENERIC_KASAN"

HARDENING_OPTIONS = [
    "makeoptions    KASAN=1",
    "options    KASAN",
]
CONFLICTING_OPTION = "SVS"


def generate_config_fragment(target_arch: str) -> str:
    """Generate the hardened config fragment for an architecture.

    Args:
        target_arch: Target architecture (e.g. amd64).

    Returns:
        Fragment text. Identical input always yields identical text.
    """
    lines = [
        f'include "arch/{target_arch}/conf/GENERIC"',
        "",
        *HARDENING_OPTIONS,
        f"no options {CONFLICTING_OPTION}",
    ]
    return "\n".join(lines) + "\n"


def config_dir(kernel_dir: Path, target_arch: str) -> Path:
    """Return the per-architecture kernel configuration directory."""
    return kernel_dir / "sys" / "arch" / target_arch / "conf"


def compile_dir(kernel_dir: Path, target_arch: str) -> Path:
    """Return the directory build.sh compiles KERNEL_CONFIG_NAME into."""
    return (
        kernel_dir
        / "sys"
        / "arch"
        / target_arch
        / "compile"
        / "obj"
        / KERNEL_CONFIG_NAME
    )


def write_config_fragment(
    kernel_dir: Path,
    target_arch: str,
    fs: Filesystem | None = None,
) -> Path:
    """Write the hardened fragment, replacing any previous file.

    Args:
        kernel_dir: Kernel source tree root.
        target_arch: Target architecture.
        fs: Filesystem to write through.

    Returns:
        Path of the written configuration file.

    Raises:
        ConfigWriteError: If the file cannot be written.
    """
    if fs is None:
        fs = LocalFilesystem()

    path = config_dir(kernel_dir, target_arch) / KERNEL_CONFIG_NAME
    fragment = generate_config_fragment(target_arch)
    try:
        fs.write_file(path, fragment.encode("utf-8"))
    except OSError as e:
        logger.error("Cannot write kernel config %s: %s", path, e)
        raise ConfigWriteError(path, str(e)) from e

    logger.info("Wrote hardened kernel config to %s", path)
    return path


__all__ = [
    "CONFLICTING_OPTION",
    "HARDENING_OPTIONS",
    "KERNEL_CONFIG_NAME",
    "compile_dir",
    "config_dir",
    "generate_config_fragment",
    "write_config_fragment",
]
