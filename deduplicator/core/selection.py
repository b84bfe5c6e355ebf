#!/usr/bin/env python3
"""
Selection Policy - choose which member of a group is kept

select_source() is a pure function: it never touches the filesystem beyond
reading timestamps, and deletion is left to the caller, which must only act
on the ``duplicates`` half of the result.
"""

from typing import Callable, Dict, List, NamedTuple, Sequence

from .config import FileOrdering, Keep
from .entries import FileEntry

class SelectionResult(NamedTuple):
    """The kept file and the remaining duplicates, in sorted order"""
    source: FileEntry
    duplicates: List[FileEntry]

_ORDERING_KEYS: Dict[FileOrdering, Callable[[FileEntry], object]] = {
    FileOrdering.MODIFIED: FileEntry.modified,
    FileOrdering.CREATED: FileEntry.created,
    FileOrdering.NAME: lambda entry: entry.name,
}

def ordering_key(order: FileOrdering) -> Callable[[FileEntry], object]:
    """
    Get the sort key for an ordering.

    Time based keys raise MetadataMissingError when the timestamp cannot be read.
    """
    return _ORDERING_KEYS[FileOrdering(order)]

def sort_entries(entries: Sequence[FileEntry], order: FileOrdering) -> List[FileEntry]:
    """Stable ascending sort by the ordering key"""
    key = ordering_key(order)
    # Read every key up front so a missing timestamp fails before any ordering
    keyed = [(key(entry), index, entry) for index, entry in enumerate(entries)]
    keyed.sort(key=lambda item: (item[0], item[1]))
    return [entry for _, _, entry in keyed]

def select_source(entries: Sequence[FileEntry], order: FileOrdering, keep: Keep) -> SelectionResult:
    """
    Split a group into the source to retain and its duplicates.

    Args:
        entries: Members of one duplicate group (at least one)
        order: Key the members are sorted by, ascending
        keep: FIRST keeps the sorted head, LAST keeps the sorted tail

    Raises:
        MetadataMissingError: a timestamp needed for ``order`` is unavailable
    """
    if not entries:
        raise ValueError("Cannot select a source from an empty group")

    ordered = sort_entries(entries, order)

    if Keep(keep) is Keep.FIRST:
        return SelectionResult(ordered[0], ordered[1:])
    return SelectionResult(ordered[-1], ordered[:-1])
