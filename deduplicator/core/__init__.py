"""
Deduplicator Core Modules

Core functionality for file listing, concurrent hashing, exact duplicate
grouping, source selection, image similarity clustering and deletion.
"""

from . import config
from . import errors
from . import entries
from . import hasher
from . import duplicates
from . import selection
from . import similarity
from . import deleter
from . import stats

__all__ = [
    "config",
    "errors",
    "entries",
    "hasher",
    "duplicates",
    "selection",
    "similarity",
    "deleter",
    "stats",
]
