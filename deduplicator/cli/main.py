#!/usr/bin/env python3
"""
Deduplicator - Duplicate and Near-Duplicate File Finder

Features:
- Size pre-filter: only files sharing a byte length are ever read
- Concurrent SHA-256 hashing on a fixed-size worker pool
- Perceptual image similarity with a configurable threshold
- Deterministic keep/delete selection by modification time, creation time or name
- Optional deletion of the duplicates, never of the kept source
"""

import argparse
import contextlib
import logging
import os
import sys
from pathlib import Path
from typing import List, Optional, Sequence, TextIO

from .. import __version__
from ..core.config import Config, FileOrdering, Keep, Mode, PERCEPTUAL_ALGORITHMS, enum_values
from ..core.deleter import DeletionReport, delete_files
from ..core.duplicates import DuplicateGroup, run_duplicate_detection
from ..core.entries import FileEntry, list_entries
from ..core.errors import InvariantViolationError, MetadataMissingError
from ..core.selection import SelectionResult, select_source
from ..core.similarity import SimilarityGroup, run_similarity_detection
from ..core.stats import ScanStats
from ..utils.terminal import ProgressTracker, hidden_cursor

# ---------------------------
# Logging Configuration
# ---------------------------
logging.basicConfig(
    level=logging.INFO,
    format='[%(asctime)s] %(levelname)s: %(message)s',
    datefmt='%H:%M:%S'
)
logger = logging.getLogger(__name__)

# ---------------------------
# Utility Functions
# ---------------------------

def format_size(bytes_val: int) -> str:
    """Format bytes as human readable"""
    if bytes_val == 0:
        return "0 bytes"
    for unit in ['B', 'KB', 'MB', 'GB', 'TB']:
        if bytes_val < 1024.0:
            return f"{bytes_val:.2f} {unit}"
        bytes_val /= 1024.0
    return f"{bytes_val:.2f} PB"

def shorten_path(path: Path, root: Path) -> str:
    """Path relative to the scan root, for display"""
    try:
        return os.path.relpath(path, root)
    except ValueError:
        # Different drives on Windows
        return str(path)

# ---------------------------
# Reporting
# ---------------------------

class Reporter:
    """Print groups, delete duplicates and summarize the run"""

    def __init__(self, config: Config, stats: ScanStats, out: Optional[TextIO] = None):
        self.config = config
        self.stats = stats
        self.out = out or sys.stdout
        self.deletions = DeletionReport()
        self.skipped_groups = 0

    def _print(self, line: str = "") -> None:
        print(line, file=self.out)

    def _select(self, entries: Sequence[FileEntry]) -> Optional[SelectionResult]:
        try:
            return select_source(entries, self.config.order, self.config.keep)
        except MetadataMissingError as e:
            # Only the first skipped group is reported as a warning
            log = logger.debug if self.skipped_groups else logger.warning
            log(f"Skipping group: {e}")
            self.skipped_groups += 1
            return None

    def _handle(self, header: str, selection: SelectionResult) -> None:
        source, duplicates = selection

        if not self.config.quiet:
            self._print(header)
            self._print(f"Source: {shorten_path(source.path, self.config.path)}")
            for entry in duplicates:
                self._print(f"Copy:   {shorten_path(entry.path, self.config.path)}")

        if self.config.delete:
            self.deletions.merge(delete_files(duplicates))

        if not self.config.quiet:
            self._print()

    def duplicate_group(self, group: DuplicateGroup) -> None:
        """Report (and optionally delete) one group of exact duplicates"""
        selection = self._select(group.entries)
        if selection is None:
            return
        self._handle(f"Found {group.count} duplicate files:", selection)

    def similarity_group(self, group: SimilarityGroup) -> None:
        """Report (and optionally delete) one group of similar images"""
        selection = self._select([FileEntry(path) for path in group.members])
        if selection is None:
            return
        self._handle(f"Found {len(group)} similar files (similarity {group.score:.3f}):", selection)

    def summary(self) -> None:
        """Print the final counts; shown even in quiet mode"""
        stats = self.stats
        self._print("Summary:")
        if self.config.mode is Mode.HASH:
            self._print(f"{stats.duplicate_groups} duplicate groups")
            self._print(f"{stats.duplicate_files} duplicates found")
            self._print(f"{stats.size_collisions} size collisions")
            self._print(f"{format_size(stats.wasted_space)} space saved after deletion of duplicates")
        else:
            self._print(f"{stats.duplicate_groups} similarity groups")
            self._print(f"{stats.duplicate_files} similar files found")
            self._print(f"{stats.similar_pairs} similar pairs")
            self._print(f"{stats.files_fingerprinted} images fingerprinted")
        if self.skipped_groups:
            self._print(f"{self.skipped_groups} groups skipped (missing metadata)")
        if self.config.delete:
            self._print(f"{len(self.deletions.deleted)} files deleted")
            self._print(f"{len(self.deletions.failures)} deletion failures")
        self._print()

        scan_phases = ("collect", "group") if self.config.mode is Mode.HASH else ("fingerprint", "compare")
        scan_time = sum(stats.phase_duration(phase) for phase in scan_phases)
        self._print(f"Done in {stats.get_duration() * 1000:.0f}ms!")
        self._print(f"Scan took {scan_time * 1000:.0f}ms")

# ---------------------------
# Run
# ---------------------------

def run(config: Config, out: Optional[TextIO] = None,
        progress: Optional[ProgressTracker] = None) -> ScanStats:
    """Scan ``config.path`` and report every group found"""
    stats = ScanStats()
    reporter = Reporter(config, stats, out)
    progress = progress or ProgressTracker()

    logger.info(f"Deduplicator v{__version__}")
    logger.info(f"Mode: {config.mode.value} | Threads: {config.threads} | Path: {config.path}")

    entries = list_entries(
        config.path,
        recursive=config.recursive,
        follow_symlinks=config.follow_symlinks,
        report_errors=config.report_errors,
    )

    cursor = hidden_cursor(progress.stream) if progress.enabled else contextlib.nullcontext()
    with cursor:
        try:
            if config.mode is Mode.HASH:
                for group in run_duplicate_detection(entries, config, stats, progress.update):
                    reporter.duplicate_group(group)
            else:
                for group in run_similarity_detection(entries, config, stats, progress.update):
                    reporter.similarity_group(group)
        finally:
            progress.finish()

    if not config.no_summary:
        reporter.summary()

    return stats

# ---------------------------
# CLI Interface
# ---------------------------

def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="deduplicator",
        description="Deduplicator - Find and remove duplicate files in a folder",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter
    )

    parser.add_argument("--path", type=Path, required=True, help="Path towards the folder to scan")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")

    # Selection
    parser.add_argument("--keep", choices=enum_values(Keep), default=Keep.FIRST.value,
                        help="What file to keep")
    parser.add_argument("--order", choices=enum_values(FileOrdering), default=FileOrdering.MODIFIED.value,
                        help="How to order files (created needs a filesystem birth time, "
                             "which most Linux systems do not report)")
    parser.add_argument("--sort-output", choices=enum_values(FileOrdering),
                        help="How to sort the duplicate groups")

    # Actions
    parser.add_argument("--delete", action="store_true", help="Delete the duplicate files")

    # Detection
    parser.add_argument("--mode", choices=enum_values(Mode), default=Mode.HASH.value,
                        help="Criteria for file duplicate finding")
    parser.add_argument("--similarity-score", type=int, default=95,
                        help="Required similarity for reporting duplicate images in similarity mode, "
                             "0-100, 100 indicating exact match")
    parser.add_argument("--hash-algorithm", choices=PERCEPTUAL_ALGORITHMS, default="double_gradient",
                        help="Perceptual hash used in similarity mode")
    parser.add_argument("--hash-size", type=int, default=16, help="Perceptual hash size")

    # Performance
    parser.add_argument("--threads", type=int, help="How many threads to split file reading into (default: CPU count)")
    parser.add_argument("--chunk-size", type=int, default=1024 * 1024, help="Read chunk size in bytes")

    # Traversal
    parser.add_argument("--no-recursive", action="store_true", help="Do not search subfolders")
    parser.add_argument("--follow-symlinks", action="store_true", help="Follow symbolic links")

    # Output
    parser.add_argument("--quiet", "-q", action="store_true", help="Only print the summary")
    parser.add_argument("--verbose", "-v", action="store_true", help="Verbose output")
    parser.add_argument("--no-summary", action="store_true", help="Do not show the summary at the end")
    parser.add_argument("--no-ignore-errors", action="store_true",
                        help="Report errors retrieving and reading files instead of skipping them silently")

    return parser

def config_from_args(args: argparse.Namespace) -> Config:
    """Build and validate a Config from parsed arguments"""
    options = dict(
        path=args.path,
        keep=args.keep,
        order=args.order,
        sort_output=args.sort_output,
        delete=args.delete,
        mode=args.mode,
        similarity_score=args.similarity_score,
        hash_algorithm=args.hash_algorithm,
        hash_size=args.hash_size,
        chunk_size=args.chunk_size,
        no_recursive=args.no_recursive,
        follow_symlinks=args.follow_symlinks,
        quiet=args.quiet,
        verbose=args.verbose,
        no_summary=args.no_summary,
        no_ignore_errors=args.no_ignore_errors,
    )
    if args.threads is not None:
        options["threads"] = args.threads
    return Config(**options)

def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point"""
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        config = config_from_args(args)
    except ValueError as e:
        parser.error(str(e))

    if not config.path.is_dir():
        parser.error(f"Path is not a directory: {config.path}")

    # Set logging level
    if config.quiet:
        logging.getLogger("deduplicator").setLevel(logging.WARNING)
    elif config.verbose:
        logging.getLogger("deduplicator").setLevel(logging.DEBUG)

    try:
        run(config)
    except KeyboardInterrupt:
        print("\nScan interrupted by user", file=sys.stderr)
        return 1
    except InvariantViolationError as e:
        logger.error(f"Fatal error: {e}", exc_info=True)
        return 1

    return 0

if __name__ == "__main__":
    sys.exit(main())
