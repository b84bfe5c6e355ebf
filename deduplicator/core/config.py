#!/usr/bin/env python3
"""
Run configuration for Deduplicator

All options arrive here as plain values (from the CLI or from callers of the
engines) and are coerced into enums and validated once, at construction time,
so the engines never see an unexpected string.
"""

import os
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import List, Optional

class Keep(str, Enum):
    """Which end of a sorted duplicate group is kept as the source"""
    FIRST = "first"
    LAST = "last"

class FileOrdering(str, Enum):
    """Ordering key used for source selection and output sorting"""
    MODIFIED = "modified"
    CREATED = "created"
    NAME = "name"

class Mode(str, Enum):
    """Criteria used to decide that two files are duplicates"""
    HASH = "hash"
    SIMILARITY = "similarity"

PERCEPTUAL_ALGORITHMS = ("double_gradient", "phash", "ahash", "dhash", "whash")

def enum_values(enum_cls) -> List[str]:
    """Get the accepted string values of an enum, for argparse choices"""
    return [member.value for member in enum_cls]

def _coerce(enum_cls, value, name: str):
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(str(value).lower())
    except ValueError:
        raise ValueError(
            f"Invalid {name}: {value!r} (expected one of {', '.join(enum_values(enum_cls))})"
        ) from None

@dataclass
class Config:
    """Deduplicator configuration with smart defaults"""
    # Paths
    path: Path = field(default_factory=Path.cwd)

    # Selection
    keep: Keep = Keep.FIRST
    order: FileOrdering = FileOrdering.MODIFIED
    sort_output: Optional[FileOrdering] = None

    # Actions
    delete: bool = False

    # Performance
    threads: int = field(default_factory=lambda: os.cpu_count() or 1)
    chunk_size: int = 1024 * 1024  # 1 MB

    # Traversal
    no_recursive: bool = False
    follow_symlinks: bool = False

    # Detection
    mode: Mode = Mode.HASH
    similarity_score: int = 95  # 0-100, 100 is an exact fingerprint match
    hash_algorithm: str = "double_gradient"
    hash_size: int = 16

    # Output
    quiet: bool = False
    verbose: bool = False
    no_summary: bool = False
    no_ignore_errors: bool = False

    def __post_init__(self):
        self.path = Path(self.path)
        self.keep = _coerce(Keep, self.keep, "keep")
        self.order = _coerce(FileOrdering, self.order, "order")
        self.mode = _coerce(Mode, self.mode, "mode")
        if self.sort_output is not None:
            self.sort_output = _coerce(FileOrdering, self.sort_output, "sort_output")
        self.validate()

    def validate(self) -> None:
        """Validate configuration"""
        if self.threads < 1:
            raise ValueError("Threads must be >= 1")
        if self.chunk_size < 1:
            raise ValueError("Chunk size must be >= 1 byte")
        if not 0 <= self.similarity_score <= 100:
            raise ValueError("Similarity score must be between 0 and 100")
        if self.hash_algorithm not in PERCEPTUAL_ALGORITHMS:
            raise ValueError(
                f"Invalid hash algorithm: {self.hash_algorithm!r} "
                f"(expected one of {', '.join(PERCEPTUAL_ALGORITHMS)})"
            )
        if self.hash_size < 2:
            raise ValueError("Hash size must be >= 2")
        if self.hash_algorithm == "whash" and self.hash_size & (self.hash_size - 1):
            raise ValueError("Hash size must be a power of 2 for whash")

    @property
    def required_similarity(self) -> float:
        """Similarity threshold on the engine's [0, 1] scale"""
        return self.similarity_score / 100.0

    @property
    def recursive(self) -> bool:
        return not self.no_recursive

    @property
    def report_errors(self) -> bool:
        """Whether per-file errors are surfaced instead of silently dropped"""
        return self.no_ignore_errors
