#!/usr/bin/env python3
"""
Entry Lister - directory traversal for Deduplicator

Produces the lazy sequence of FileEntry objects that every later stage
consumes. Entries are read-only handles; metadata is read on demand.
"""

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Iterator, Set, Tuple, Union

from .errors import MetadataMissingError

logger = logging.getLogger(__name__)

@dataclass(frozen=True)
class FileEntry:
    """Opaque reference to one file found during traversal"""
    path: Path

    @property
    def name(self) -> str:
        return self.path.name

    def stat(self) -> os.stat_result:
        """Read filesystem metadata (raises OSError)"""
        return self.path.stat()

    def size(self) -> int:
        return self.stat().st_size

    def modified(self) -> float:
        """Modification timestamp"""
        try:
            return self.stat().st_mtime
        except OSError as e:
            raise MetadataMissingError(self.path, "modified", e) from e

    def created(self) -> float:
        """Creation (birth) timestamp where the platform records one"""
        try:
            stat = self.stat()
        except OSError as e:
            raise MetadataMissingError(self.path, "created", e) from e

        birthtime = getattr(stat, "st_birthtime", None)
        if birthtime is not None:
            return birthtime
        if os.name == "nt":
            # st_ctime is the creation time on Windows
            return stat.st_ctime
        raise MetadataMissingError(self.path, "created")

    def __str__(self) -> str:
        return str(self.path)

def _first_visit(path: Path, seen: Set[Tuple[int, int]]) -> bool:
    """Record the (device, inode) behind ``path``; False if it was already recorded"""
    try:
        stat = path.stat()
    except OSError:
        return True
    identity = (stat.st_dev, stat.st_ino)
    if identity in seen:
        return False
    seen.add(identity)
    return True

def list_entries(root: Union[str, Path], recursive: bool = True,
                 follow_symlinks: bool = False,
                 report_errors: bool = False) -> Iterator[FileEntry]:
    """
    Walk ``root`` and yield one FileEntry per regular file.

    FIFOs, sockets and device nodes are never listed. When following symlinks
    a file or directory reachable through several links is listed once, under
    the first path met in sorted traversal order.

    Args:
        root: Directory to scan
        recursive: Descend into subdirectories; when False only files
            directly inside ``root`` are listed
        follow_symlinks: Follow symlinked directories and include symlinked files
        report_errors: Log traversal errors as warnings instead of debug messages
    """
    def on_error(error: OSError) -> None:
        log = logger.warning if report_errors else logger.debug
        log(f"Found error while walking directory: {error}")

    root = Path(root)
    seen_dirs: Set[Tuple[int, int]] = set()
    seen_files: Set[Tuple[int, int]] = set()
    if follow_symlinks:
        _first_visit(root, seen_dirs)

    for dirpath, dirs, files in os.walk(root, topdown=True, onerror=on_error,
                                        followlinks=follow_symlinks):
        if not recursive:
            dirs.clear()  # Don't descend
        elif follow_symlinks:
            dirs[:] = [d for d in sorted(dirs) if _first_visit(Path(dirpath) / d, seen_dirs)]
        else:
            dirs.sort()

        for filename in sorted(files):
            path = Path(dirpath) / filename
            if not follow_symlinks and path.is_symlink():
                continue
            if not path.is_file():
                logger.debug(f"Skipping {path}: not a regular file")
                continue
            if follow_symlinks and not _first_visit(path, seen_files):
                logger.debug(f"Skipping {path}: already listed through another link")
                continue
            yield FileEntry(path)
