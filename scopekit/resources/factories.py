"""
resources/factories.py - Ready-made resource specs

Module 1: Scoped Resources

File handles and temporary working directories.
"""

from __future__ import annotations
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Union
import logging
import os
import shutil
import tempfile

from .schemas import ResourceSpec

logger = logging.getLogger(__name__)

PathLike = Union[str, "os.PathLike[str]"]


def file_handle(
    path: PathLike,
    mode: str = "r",
    encoding: Optional[str] = None,
) -> ResourceSpec:
    """
    Spec for an open file, closed on release.

    A missing file surfaces as AcquisitionError caused by FileNotFoundError.
    """
    if encoding is None and "b" not in mode:
        encoding = "utf-8"

    def _open():
        return open(path, mode, encoding=encoding)

    def _close(handle) -> None:
        handle.close()

    return ResourceSpec(name=f"file:{os.fspath(path)}", acquire=_open, release=_close)


@dataclass
class TempDirectory:
    """A temporary directory, optionally the current working directory."""

    path: Path
    previous_cwd: Optional[Path] = None
    removed: bool = False

    @property
    def closed(self) -> bool:
        return self.removed

    def __fspath__(self) -> str:
        return str(self.path)

    def cleanup(self) -> None:
        """Restore the previous working directory, then remove the tree."""
        if self.removed:
            return
        try:
            if self.previous_cwd is not None:
                os.chdir(self.previous_cwd)
        finally:
            shutil.rmtree(self.path)
            self.removed = True
            logger.debug(f"Removed temporary directory {self.path}")


def temp_directory(chdir: bool = True, prefix: str = "scopekit-") -> ResourceSpec:
    """
    Spec for a temporary directory.

    With chdir=True the process working directory is switched into it for
    the life of the scope. The working directory is process-wide, so such
    scopes must not overlap across threads.
    """

    def _create() -> TempDirectory:
        path = Path(tempfile.mkdtemp(prefix=prefix))
        if not chdir:
            return TempDirectory(path=path)

        previous = Path.cwd()
        try:
            os.chdir(path)
        except OSError:
            shutil.rmtree(path, ignore_errors=True)
            raise
        return TempDirectory(path=path, previous_cwd=previous)

    def _remove(handle: TempDirectory) -> None:
        handle.cleanup()

    return ResourceSpec(name=f"tempdir:{prefix}", acquire=_create, release=_remove)
