#!/usr/bin/env python3
"""
Deletion of duplicate files

Each removal is independent: a failure is logged with the path and its cause
and the remaining files are still removed. Nothing is rolled back.
"""

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, List

from .entries import FileEntry
from .errors import DeletionFailureError

logger = logging.getLogger(__name__)

@dataclass
class DeletionReport:
    """Outcome of one batch of deletions"""
    deleted: List[Path] = field(default_factory=list)
    failures: List[DeletionFailureError] = field(default_factory=list)

    def merge(self, other: "DeletionReport") -> None:
        self.deleted.extend(other.deleted)
        self.failures.extend(other.failures)

def delete_files(duplicates: Iterable[FileEntry]) -> DeletionReport:
    """Remove every file in ``duplicates``; never the source of a group"""
    report = DeletionReport()

    for entry in duplicates:
        try:
            os.remove(entry.path)
        except OSError as e:
            failure = DeletionFailureError(entry.path, e)
            logger.error(str(failure))
            report.failures.append(failure)
            continue

        logger.debug(f"Deleted: {entry.path}")
        report.deleted.append(entry.path)

    return report
