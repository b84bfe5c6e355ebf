#!/usr/bin/env python3
"""
Concurrent Hasher for Deduplicator

Dispatches one task per file onto a fixed-size thread pool and hands the
results back to the calling thread in completion order. Tasks share no state;
every grouping structure is touched only by the consumer of map_unordered().
"""

import hashlib
import logging
from concurrent.futures import ThreadPoolExecutor, as_completed
from pathlib import Path
from typing import Callable, Iterable, Iterator, Optional, Tuple, TypeVar

from .entries import FileEntry
from .errors import DeduplicatorError, EntryUnreadableError, InvariantViolationError

logger = logging.getLogger(__name__)

T = TypeVar("T")

ProgressCallback = Callable[[int, int], None]

DEFAULT_CHUNK_SIZE = 1024 * 1024  # 1 MB

def sha256_digest(path: Path, chunk_size: int = DEFAULT_CHUNK_SIZE) -> bytes:
    """Compute the SHA-256 digest of a file, reading it in fixed-size chunks"""
    hasher = hashlib.sha256()
    with path.open("rb") as f:
        while chunk := f.read(chunk_size):
            hasher.update(chunk)
    return hasher.digest()

def read_size(entry: FileEntry) -> int:
    """Metadata task: byte length of a regular file"""
    return entry.size()

class ConcurrentHasher:
    """Run per-file tasks on a worker pool and drain their results"""

    def __init__(self, workers: int, on_result: Optional[ProgressCallback] = None,
                 report_errors: bool = False):
        if workers < 1:
            raise ValueError("Workers must be >= 1")
        self.workers = workers
        self.on_result = on_result
        self.report_errors = report_errors
        self.skipped = 0

    def _run_task(self, task: Callable[[FileEntry], Optional[T]], entry: FileEntry) -> Optional[T]:
        """Run one task; an unreadable file becomes a skip marker (None)"""
        try:
            return task(entry)
        except OSError as e:
            error = EntryUnreadableError(entry.path, e)
        except DeduplicatorError as e:
            error = e

        log = logger.warning if self.report_errors else logger.debug
        log(f"Skipping {entry.path}: {error}")
        return None

    def map_unordered(self, task: Callable[[FileEntry], Optional[T]],
                      entries: Iterable[FileEntry]) -> Iterator[Tuple[FileEntry, T]]:
        """
        Apply ``task`` to every entry concurrently.

        Yields (entry, result) pairs in completion order. Entries whose task
        returned None or failed to read the file are dropped. Exactly one
        result is drained per submitted task. If the consumer stops early
        (Ctrl-C, closing the generator) tasks that have not started are
        cancelled.
        """
        with ThreadPoolExecutor(max_workers=self.workers) as executor:
            futures = {executor.submit(self._run_task, task, entry): entry for entry in entries}
            submitted = len(futures)
            drained = 0

            try:
                for future in as_completed(futures):
                    drained += 1
                    if self.on_result:
                        self.on_result(drained, submitted)

                    result = future.result()
                    if result is None:
                        self.skipped += 1
                        continue
                    yield futures[future], result
            except BaseException:
                # Drop queued tasks so shutdown only waits for the running ones
                for future in futures:
                    future.cancel()
                raise

            if drained != submitted:
                raise InvariantViolationError(
                    f"Drained {drained} results for {submitted} submitted tasks"
                )
