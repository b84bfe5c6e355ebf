#!/usr/bin/env python3
"""
Exact-Duplicate Engine for Deduplicator

Two-stage candidate pruning:

1. COLLECT - read every file's size concurrently and bucket by size.
   A file with a unique size cannot have an exact duplicate, so it is never read.
2. GROUP   - digest every member of a size bucket with two or more files
   (SHA-256, concurrently) and sub-bucket by digest.
3. EMIT    - every digest sub-bucket with two or more files is a DuplicateGroup;
   single-file sub-buckets are size collisions and are discarded.

Digest equality is the duplicate criterion. Files are not compared byte by
byte afterwards; a SHA-256 collision is treated as impossible.
"""

import functools
import logging
from dataclasses import dataclass
from typing import Callable, Dict, Iterable, Iterator, List, Optional, Tuple

from .config import Config, FileOrdering
from .entries import FileEntry
from .errors import MetadataMissingError
from .hasher import ConcurrentHasher, read_size, sha256_digest
from .selection import ordering_key
from .stats import ScanStats

logger = logging.getLogger(__name__)

PhaseProgress = Callable[[str, int, int], None]

@dataclass(frozen=True)
class DuplicateGroup:
    """Files sharing one size and one content digest"""
    size: int
    digest: bytes
    entries: Tuple[FileEntry, ...]

    @property
    def count(self) -> int:
        return len(self.entries)

    @property
    def wasted_space(self) -> int:
        return self.size * (self.count - 1)

    @property
    def hexdigest(self) -> str:
        return self.digest.hex()

def sort_groups(groups: Iterable[DuplicateGroup], order: FileOrdering) -> List[DuplicateGroup]:
    """
    Order groups by the ordering key of each group's last member.

    Groups whose key cannot be read keep their relative order at the end.
    """
    key = ordering_key(order)
    keyed = []
    unkeyed = []

    for group in groups:
        try:
            keyed.append((key(group.entries[-1]), group))
        except MetadataMissingError as e:
            log = logger.debug if unkeyed else logger.warning
            log(f"Cannot sort group {group.hexdigest[:12]}: {e}")
            unkeyed.append(group)

    keyed.sort(key=lambda item: item[0])
    return [group for _, group in keyed] + unkeyed

class DuplicateFinder:
    """Find groups of byte-identical files"""

    def __init__(self, config: Config, stats: Optional[ScanStats] = None,
                 on_progress: Optional[PhaseProgress] = None):
        self.config = config
        self.stats = stats if stats is not None else ScanStats()
        self.on_progress = on_progress

    def _hasher(self, phase: str) -> ConcurrentHasher:
        callback = functools.partial(self.on_progress, phase) if self.on_progress else None
        return ConcurrentHasher(self.config.threads, callback, self.config.report_errors)

    def collect(self, entries: Iterable[FileEntry]) -> Dict[int, List[FileEntry]]:
        """COLLECT: bucket files by byte length"""
        entries = list(entries)
        self.stats.files_found += len(entries)
        logger.info(f"Found {len(entries):,} files")

        hasher = self._hasher("Reading file sizes")
        sizes: Dict[int, List[FileEntry]] = {}
        for entry, size in hasher.map_unordered(read_size, entries):
            sizes.setdefault(size, []).append(entry)

        self.stats.files_skipped += hasher.skipped
        return sizes

    def group(self, sizes: Dict[int, List[FileEntry]]) -> List[DuplicateGroup]:
        """GROUP and EMIT: digest size-bucket candidates and keep shared digests"""
        candidates = {
            entry: size
            for size, bucket in sizes.items() if len(bucket) > 1
            for entry in bucket
        }
        logger.info(
            f"Hashing {len(candidates):,} candidates "
            f"({sum(1 for b in sizes.values() if len(b) > 1):,} size buckets)"
        )

        task = functools.partial(self._digest, chunk_size=self.config.chunk_size)
        hasher = self._hasher("Hashing candidates")
        digests: Dict[Tuple[int, bytes], List[FileEntry]] = {}
        for entry, digest in hasher.map_unordered(task, candidates):
            digests.setdefault((candidates[entry], digest), []).append(entry)
            self.stats.files_digested += 1

        self.stats.files_skipped += hasher.skipped

        groups = []
        for (size, digest), members in digests.items():
            if len(members) < 2:
                self.stats.size_collisions += 1
                continue
            members.sort(key=lambda entry: str(entry.path))
            groups.append(DuplicateGroup(size, digest, tuple(members)))

        groups.sort(key=lambda group: str(group.entries[0].path))
        return groups

    @staticmethod
    def _digest(entry: FileEntry, chunk_size: int) -> bytes:
        return sha256_digest(entry.path, chunk_size)

    def find(self, entries: Iterable[FileEntry]) -> Iterator[DuplicateGroup]:
        """Run all phases and yield duplicate groups"""
        self.stats.start_phase("collect")
        sizes = self.collect(entries)
        self.stats.end_phase("collect")

        self.stats.start_phase("group")
        groups = self.group(sizes)
        del sizes
        self.stats.end_phase("group")

        if self.config.sort_output is not None:
            groups = sort_groups(groups, self.config.sort_output)

        logger.info(
            f"Found {len(groups):,} duplicate groups "
            f"({self.stats.size_collisions:,} size collisions)"
        )

        for group in groups:
            self.stats.duplicate_groups += 1
            self.stats.duplicate_files += group.count
            self.stats.wasted_space += group.wasted_space
            yield group

def run_duplicate_detection(entries: Iterable[FileEntry], config: Config,
                            stats: Optional[ScanStats] = None,
                            on_progress: Optional[PhaseProgress] = None) -> Iterator[DuplicateGroup]:
    """Yield groups of exact duplicates among ``entries``"""
    return DuplicateFinder(config, stats, on_progress).find(entries)
