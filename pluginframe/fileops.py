"""File helpers used when gathering and comparing plugin and config files."""

from __future__ import annotations

import os
import shutil
import sys
from pathlib import Path

__all__ = [
    "copy_file",
    "copy_directory",
    "copy_library_files",
    "is_plugin_library",
    "files_differ",
]

PathLike = str | os.PathLike


def _library_suffix() -> str | None:
    if sys.platform.startswith("linux"):
        return ".so"
    if sys.platform.startswith("win"):
        return ".dll"
    return None


def is_plugin_library(path: PathLike) -> bool:
    """Return whether ``path`` names a shared library for this platform."""
    suffix = _library_suffix()
    if suffix is None:
        return False
    return os.fspath(path).lower().endswith(suffix)


def _copy_new(source: PathLike, target: PathLike) -> bool:
    """Copy a file; never overwrite an existing target."""
    if os.path.exists(target):
        return False
    try:
        shutil.copy(source, target)
    except OSError:
        return False
    return True


def copy_file(source: PathLike, target: PathLike, overwrite: bool = False) -> bool:
    """Copy one file; return whether the target now holds the source."""
    source = os.fspath(source)
    target = os.fspath(target).replace("\\", "/")
    if source == target:
        return True
    if not os.path.exists(source):
        return False
    if overwrite and os.path.isfile(target):
        os.remove(target)
    return _copy_new(source, target)


def _ensure_directory(target: Path) -> bool:
    if target.exists():
        return True
    try:
        target.mkdir()
    except OSError:
        return False
    return True


def copy_directory(source: PathLike, target: PathLike, overwrite: bool = False) -> bool:
    """Copy a directory tree; stop and return False at the first failure."""
    source, target = Path(source), Path(target)
    if not _ensure_directory(target):
        return False
    for entry in sorted(source.iterdir()):
        destination = target / entry.name
        if entry.is_dir():
            if not copy_directory(entry, destination, overwrite):
                return False
            continue
        if overwrite and destination.is_file():
            destination.unlink()
        if not _copy_new(entry, destination):
            return False
    return True


def copy_library_files(source: PathLike, target: PathLike, overwrite: bool = False) -> bool:
    """Copy the platform's shared libraries from one directory to another.

    Files that cannot be copied are skipped; only failing to create the
    target directory makes this return False.
    """
    source, target = Path(source), Path(target)
    if not _ensure_directory(target):
        return False
    for entry in sorted(source.iterdir()):
        destination = target / entry.name
        if overwrite and destination.is_file():
            destination.unlink()
        if is_plugin_library(entry.name):
            _copy_new(entry, destination)
    return True


def files_differ(path1: PathLike, path2: PathLike) -> bool:
    """Return True when the files differ or either cannot be read."""
    try:
        first = Path(path1).read_bytes()
        second = Path(path2).read_bytes()
    except OSError:
        return True
    return first != second