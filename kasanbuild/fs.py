"""Filesystem operations used by the build pipeline.

Both operations are all-or-nothing: data is written to a temporary file
in the destination directory and renamed into place, so a failed write or
copy never leaves a truncated file at the destination path.
"""

from __future__ import annotations

import logging
import os
import shutil
import tempfile
from pathlib import Path
from typing import Protocol

logger = logging.getLogger(__name__)


class Filesystem(Protocol):
    """Filesystem operations the pipeline depends on."""

    def write_file(self, path: Path, data: bytes) -> None: ...

    def copy_file(self, src: Path, dst: Path) -> None: ...


def _replace_from_temp(dst: Path, fill) -> None:
    fd, tmp_name = tempfile.mkstemp(prefix=f".{dst.name}.", dir=dst.parent)
    tmp_path = Path(tmp_name)
    try:
        with os.fdopen(fd, "wb") as tmp_file:
            fill(tmp_file)
            tmp_file.flush()
            os.fsync(tmp_file.fileno())
        os.replace(tmp_path, dst)
    except BaseException:
        tmp_path.unlink(missing_ok=True)
        raise


class LocalFilesystem:
    """Filesystem backed by the local disk."""

    def write_file(self, path: Path, data: bytes) -> None:
        """Write bytes to path, creating parent directories.

        Raises:
            OSError: If the file cannot be written.
        """
        path.parent.mkdir(parents=True, exist_ok=True)
        _replace_from_temp(path, lambda f: f.write(data))
        logger.debug("Wrote %d bytes to %s", len(data), path)

    def copy_file(self, src: Path, dst: Path) -> None:
        """Copy src to dst, preserving the source permission bits.

        Raises:
            OSError: If the source cannot be read or dst cannot be written.
        """
        dst.parent.mkdir(parents=True, exist_ok=True)
        with src.open("rb") as source:
            _replace_from_temp(dst, lambda f: shutil.copyfileobj(source, f))
        shutil.copymode(src, dst)
        logger.debug("Copied %s -> %s", src, dst)


__all__ = ["Filesystem", "LocalFilesystem"]
