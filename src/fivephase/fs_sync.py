"""
5-Phase Workflow - Feature development workflow for Claude Code
Copyright (c) 2025 5-Phase Workflow contributors
Licensed under MIT License

Filesystem primitives used by the installer.

All operations are idempotent. Failures are raised as SyncError naming the
primitive and the path; partially copied trees are left as they are.
"""

import logging
import shutil
from pathlib import Path

from .errors import SyncError

logger = logging.getLogger(__name__)


def copy_tree(src: Path, dst: Path):
    """Copy src into dst recursively, overwriting existing files."""
    src, dst = Path(src), Path(dst)
    current = dst
    try:
        dst.mkdir(parents=True, exist_ok=True)
        for entry in sorted(src.iterdir()):
            current = dst / entry.name
            if entry.is_dir():
                copy_tree(entry, current)
            else:
                shutil.copy2(entry, current)
    except SyncError:
        raise
    except OSError as e:
        raise SyncError('copy_tree', current, e) from e


def copy_tree_merge(src: Path, dst: Path):
    """
    Copy src into dst recursively without overwriting anything.

    Existing destination files are kept as they are (first writer wins);
    existing directories are descended into so missing children still land.
    """
    src, dst = Path(src), Path(dst)
    current = dst
    try:
        dst.mkdir(parents=True, exist_ok=True)
        for entry in sorted(src.iterdir()):
            current = dst / entry.name
            if entry.is_dir():
                if current.exists() and not current.is_dir():
                    logger.debug("Keeping existing file %s over directory %s", current, entry)
                    continue
                copy_tree_merge(entry, current)
            elif current.exists():
                logger.debug("Keeping existing %s", current)
            else:
                shutil.copy2(entry, current)
    except SyncError:
        raise
    except OSError as e:
        raise SyncError('copy_tree_merge', current, e) from e


def copy_file_if_exists(src: Path, dst: Path) -> bool:
    """Copy a single file, creating parent directories. Returns False if src is absent."""
    src, dst = Path(src), Path(dst)
    if not src.is_file():
        return False
    try:
        dst.parent.mkdir(parents=True, exist_ok=True)
        shutil.copy2(src, dst)
    except OSError as e:
        raise SyncError('copy_file', dst, e) from e
    return True


def remove_tree(path: Path) -> bool:
    """Delete a directory tree or a single file. Returns False if nothing was there."""
    path = Path(path)
    if not path.exists() and not path.is_symlink():
        return False
    try:
        if path.is_dir() and not path.is_symlink():
            shutil.rmtree(path)
        else:
            path.unlink()
    except OSError as e:
        raise SyncError('remove_tree', path, e) from e
    return True


def remove_empty_dir(path: Path) -> bool:
    """Remove a directory only if it exists and is empty."""
    path = Path(path)
    if not path.is_dir() or any(path.iterdir()):
        return False
    try:
        path.rmdir()
    except OSError as e:
        raise SyncError('remove_empty_dir', path, e) from e
    return True
