"""
Deduplicator - Duplicate and Near-Duplicate File Finder

Finds exact duplicates by size and SHA-256 content digest, and similar
images by perceptual hashing, with optional removal of the copies.
"""

__version__ = "1.0.0"
__author__ = "Deduplicator Team"
__email__ = "info@deduplicator.dev"
__license__ = "MIT"

from .core import config, duplicates, selection, similarity

__all__ = [
    "config",
    "duplicates",
    "selection",
    "similarity",
]
