#!/usr/bin/env python3
"""
Similarity Engine for Deduplicator
Detects near-duplicate images using perceptual hashing.

Every decodable image gets one fingerprint. All fingerprints are compared
pairwise (O(N^2), fingerprints are tiny), pairs at or above the required
similarity are kept in discovery order, and pairs are merged greedily into
groups.

Grouping is first-match: a pair joins the group one of its files already
belongs to, and two existing groups are never merged. If a is similar to b
and b to c, all three share a group even when a and c are not similar; a long
gradient of slightly different images may also end up split across groups
depending on discovery order. A high threshold keeps this rare.
"""

import functools
import itertools
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Dict, Iterable, Iterator, List, NamedTuple, Optional, Sequence, Tuple

import imagehash
import numpy as np
from PIL import Image

from .config import Config
from .entries import FileEntry
from .errors import DecodeFailureError
from .hasher import ConcurrentHasher
from .stats import ScanStats

logger = logging.getLogger(__name__)

PhaseProgress = Callable[[str, int, int], None]

SCORE_DIGITS = 9

_HASH_FUNCTIONS = {
    'phash': imagehash.phash,
    'ahash': imagehash.average_hash,
    'dhash': imagehash.dhash,
    'whash': imagehash.whash,
}

def double_gradient_hash(img: Image.Image, hash_size: int = 16) -> imagehash.ImageHash:
    """Horizontal and vertical difference hashes concatenated into one fingerprint"""
    horizontal = imagehash.dhash(img, hash_size)
    vertical = imagehash.dhash_vertical(img, hash_size)
    return imagehash.ImageHash(np.concatenate([horizontal.hash.flatten(), vertical.hash.flatten()]))

def compute_fingerprint(path: Path, algorithm: str = "double_gradient",
                        hash_size: int = 16) -> imagehash.ImageHash:
    """
    Compute the perceptual fingerprint of an image file.

    Raises:
        DecodeFailureError: the file cannot be opened or decoded as an image
    """
    try:
        with Image.open(path) as img:
            if algorithm == "double_gradient":
                return double_gradient_hash(img, hash_size)
            return _HASH_FUNCTIONS[algorithm](img, hash_size)
    except (OSError, ValueError, SyntaxError, Image.DecompressionBombError) as e:
        raise DecodeFailureError(path, e) from e

def similarity_score(a: imagehash.ImageHash, b: imagehash.ImageHash) -> float:
    """1.0 minus the Hamming distance as a fraction of the fingerprint length"""
    total_bits = a.hash.size
    if total_bits != b.hash.size:
        raise ValueError(f"Fingerprint lengths differ: {total_bits} vs {b.hash.size}")

    distance = a - b
    if distance == 0:
        return 1.0
    return 1.0 - distance / total_bits

class SimilarPair(NamedTuple):
    score: float
    first: Path
    second: Path

@dataclass
class SimilarityGroup:
    """Similar files plus the score of the pair that opened the group"""
    score: float
    members: List[Path] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.members)

    def __contains__(self, path) -> bool:
        return path in self.members

def find_similar_pairs(fingerprints: Sequence[Tuple[Path, imagehash.ImageHash]],
                       required_similarity: float) -> List[SimilarPair]:
    """Compare every unordered pair, keeping those at or above the threshold"""
    pairs = []
    for (path_a, hash_a), (path_b, hash_b) in itertools.combinations(fingerprints, 2):
        score = similarity_score(hash_a, hash_b)
        # Scores are ratios of small integers; drop float noise before comparing
        if round(score, SCORE_DIGITS) < required_similarity:
            continue
        pairs.append(SimilarPair(score, path_a, path_b))
    return pairs

def cluster_pairs(pairs: Iterable[SimilarPair]) -> List[SimilarityGroup]:
    """
    Greedily merge similar pairs into groups.

    A pair joins the group of its first file if that file is grouped, else the
    group of its second file, else it opens a new group. Only the endpoint
    that is not yet grouped is added, so a file never appears in two groups.
    """
    group_indices: Dict[Path, int] = {}
    groups: List[SimilarityGroup] = []

    for score, first, second in pairs:
        index = group_indices.get(first)
        if index is None:
            index = group_indices.get(second)
        if index is None:
            index = len(groups)
            groups.append(SimilarityGroup(score))

        group = groups[index]
        for path in (first, second):
            if path not in group_indices:
                group_indices[path] = index
                group.members.append(path)

    return groups

class SimilarityFinder:
    """Find groups of perceptually similar images"""

    def __init__(self, config: Config, stats: Optional[ScanStats] = None,
                 on_progress: Optional[PhaseProgress] = None):
        self.config = config
        self.stats = stats if stats is not None else ScanStats()
        self.on_progress = on_progress

    def fingerprint(self, entries: Iterable[FileEntry]) -> List[Tuple[Path, imagehash.ImageHash]]:
        """Fingerprint every decodable image, sorted by path"""
        entries = list(entries)
        self.stats.files_found += len(entries)
        logger.info(f"Found {len(entries):,} files")

        callback = None
        if self.on_progress:
            callback = functools.partial(self.on_progress, "Fingerprinting images")
        hasher = ConcurrentHasher(self.config.threads, callback, self.config.report_errors)
        task = functools.partial(self._fingerprint, algorithm=self.config.hash_algorithm,
                                 hash_size=self.config.hash_size)

        fingerprints = [(entry.path, fingerprint) for entry, fingerprint in hasher.map_unordered(task, entries)]
        fingerprints.sort(key=lambda item: str(item[0]))

        self.stats.files_skipped += hasher.skipped
        self.stats.files_fingerprinted += len(fingerprints)
        return fingerprints

    @staticmethod
    def _fingerprint(entry: FileEntry, algorithm: str, hash_size: int) -> imagehash.ImageHash:
        return compute_fingerprint(entry.path, algorithm, hash_size)

    def find(self, entries: Iterable[FileEntry]) -> Iterator[SimilarityGroup]:
        """Run fingerprinting, pairwise comparison and clustering"""
        self.stats.start_phase("fingerprint")
        fingerprints = self.fingerprint(entries)
        self.stats.end_phase("fingerprint")

        self.stats.start_phase("compare")
        pairs = find_similar_pairs(fingerprints, self.config.required_similarity)
        groups = cluster_pairs(pairs)
        self.stats.end_phase("compare")

        self.stats.similar_pairs += len(pairs)
        logger.info(
            f"Compared {len(fingerprints):,} images: {len(pairs):,} similar pairs "
            f"in {len(groups):,} groups"
        )

        for group in groups:
            self.stats.duplicate_groups += 1
            self.stats.duplicate_files += len(group)
            yield group

def run_similarity_detection(entries: Iterable[FileEntry], config: Config,
                             stats: Optional[ScanStats] = None,
                             on_progress: Optional[PhaseProgress] = None) -> Iterator[SimilarityGroup]:
    """Yield groups of similar images among ``entries``"""
    return SimilarityFinder(config, stats, on_progress).find(entries)
