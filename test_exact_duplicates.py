#!/usr/bin/env python3
"""
Tests for the exact-duplicate engine (size buckets + SHA-256 digests)
"""

import hashlib

import pytest

from deduplicator.core import duplicates as duplicates_module
from deduplicator.core.config import Config
from deduplicator.core.duplicates import DuplicateFinder, run_duplicate_detection, sort_groups
from deduplicator.core.entries import FileEntry, list_entries
from deduplicator.core.hasher import sha256_digest
from deduplicator.core.stats import ScanStats

def make_files(root, contents):
    for name, data in contents.items():
        path = root / name
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(data)

def group_names(groups):
    return [[entry.name for entry in group.entries] for group in groups]

@pytest.fixture
def config(tmp_path):
    return Config(path=tmp_path, threads=4)

def test_sha256_digest_reads_in_chunks(tmp_path):
    path = tmp_path / "data.bin"
    data = bytes(range(256)) * 40
    path.write_bytes(data)

    assert sha256_digest(path, chunk_size=7) == hashlib.sha256(data).digest()

def test_identical_files_grouped_and_collision_counted(tmp_path, config):
    make_files(tmp_path, {
        "a.txt": b"hello world!",
        "b.txt": b"hello world!",
        "c.txt": b"hello world!",
        "d.txt": b"HELLO WORLD!",
    })
    stats = ScanStats()

    groups = list(run_duplicate_detection(list_entries(tmp_path), config, stats))

    assert group_names(groups) == [["a.txt", "b.txt", "c.txt"]]
    assert groups[0].size == 12
    assert groups[0].digest == hashlib.sha256(b"hello world!").digest()
    assert stats.size_collisions == 1
    assert stats.duplicate_groups == 1
    assert stats.duplicate_files == 3
    assert stats.wasted_space == 24

def test_same_size_different_content_not_grouped(tmp_path, config):
    make_files(tmp_path, {"x.bin": b"aaaa", "y.bin": b"bbbb", "z.bin": b"cccc"})
    stats = ScanStats()

    groups = list(run_duplicate_detection(list_entries(tmp_path), config, stats))

    assert groups == []
    assert stats.size_collisions == 3

def test_unique_sizes_are_never_hashed(tmp_path, config, monkeypatch):
    make_files(tmp_path, {"one": b"1", "two": b"22", "three": b"333"})
    hashed = []

    def fake_digest(path, chunk_size):
        hashed.append(path)
        return b"\x00" * 32

    monkeypatch.setattr(duplicates_module, "sha256_digest", fake_digest)

    assert list(run_duplicate_detection(list_entries(tmp_path), config)) == []
    assert hashed == []

def test_grouping_independent_of_traversal_order(tmp_path, config):
    make_files(tmp_path, {
        "sub/a.dat": b"same content",
        "b.dat": b"same content",
        "c.dat": b"same content",
        "d.dat": b"other stuff!",
        "e.dat": b"other stuff!",
    })
    entries = list(list_entries(tmp_path))

    forward = list(run_duplicate_detection(entries, config))
    backward = list(run_duplicate_detection(list(reversed(entries)), config))

    assert [(g.digest, g.entries) for g in forward] == [(g.digest, g.entries) for g in backward]
    assert sorted(len(g.entries) for g in forward) == [2, 3]

def test_repeated_runs_are_identical(tmp_path, config):
    make_files(tmp_path, {
        "a": b"x" * 100,
        "b": b"x" * 100,
        "c": b"y" * 100,
        "d": b"y" * 100,
        "e": b"z" * 50,
    })

    first = list(run_duplicate_detection(list_entries(tmp_path), config))
    second = list(run_duplicate_detection(list_entries(tmp_path), config))

    assert first == second
    assert len(first) == 2

def test_unreadable_file_is_dropped(tmp_path, config, monkeypatch):
    make_files(tmp_path, {"a": b"data", "b": b"data", "c": b"data"})
    real_digest = duplicates_module.sha256_digest

    def flaky_digest(path, chunk_size):
        if path.name == "b":
            raise PermissionError(13, "Permission denied", str(path))
        return real_digest(path, chunk_size)

    monkeypatch.setattr(duplicates_module, "sha256_digest", flaky_digest)
    stats = ScanStats()

    groups = list(run_duplicate_detection(list_entries(tmp_path), config, stats))

    assert group_names(groups) == [["a", "c"]]
    assert stats.files_skipped == 1

def test_bucket_reduced_to_one_survivor_yields_no_group(tmp_path, config, monkeypatch):
    make_files(tmp_path, {"a": b"data", "b": b"data"})
    real_digest = duplicates_module.sha256_digest

    def flaky_digest(path, chunk_size):
        if path.name == "a":
            raise OSError("read error")
        return real_digest(path, chunk_size)

    monkeypatch.setattr(duplicates_module, "sha256_digest", flaky_digest)

    assert list(run_duplicate_detection(list_entries(tmp_path), config)) == []

def test_missing_file_dropped_during_size_collection(tmp_path, config):
    make_files(tmp_path, {"a": b"data", "b": b"data"})
    entries = list(list_entries(tmp_path)) + [FileEntry(tmp_path / "vanished")]
    stats = ScanStats()

    groups = list(DuplicateFinder(config, stats).find(entries))

    assert group_names(groups) == [["a", "b"]]
    assert stats.files_found == 3
    assert stats.files_skipped == 1

def test_sort_output_by_last_member_name(tmp_path):
    make_files(tmp_path, {
        "a1": b"first group!",
        "z9": b"first group!",
        "b1": b"second",
        "c2": b"second",
    })
    config = Config(path=tmp_path, threads=2, sort_output="name")

    groups = list(run_duplicate_detection(list_entries(tmp_path), config))

    assert group_names(groups) == [["b1", "c2"], ["a1", "z9"]]

def test_sort_groups_puts_unreadable_keys_last(tmp_path):
    make_files(tmp_path, {"a": b"1", "b": b"1"})
    readable = duplicates_module.DuplicateGroup(1, b"r", (FileEntry(tmp_path / "a"), FileEntry(tmp_path / "b")))
    missing = duplicates_module.DuplicateGroup(1, b"m", (FileEntry(tmp_path / "gone1"), FileEntry(tmp_path / "gone2")))

    assert sort_groups([missing, readable], "modified") == [readable, missing]

def test_progress_reported_per_result(tmp_path, config):
    make_files(tmp_path, {"a": b"dup", "b": b"dup", "c": b"unique!"})
    calls = []

    list(run_duplicate_detection(list_entries(tmp_path), config,
                                 on_progress=lambda phase, done, total: calls.append((phase, done, total))))

    size_calls = [c for c in calls if c[0] == "Reading file sizes"]
    hash_calls = [c for c in calls if c[0] == "Hashing candidates"]
    assert [c[1] for c in size_calls] == [1, 2, 3]
    assert all(c[2] == 3 for c in size_calls)
    assert [c[1:] for c in hash_calls] == [(1, 2), (2, 2)]

def test_no_recursive_limits_to_top_level(tmp_path):
    make_files(tmp_path, {"a": b"dup", "nested/b": b"dup", "c": b"dup"})
    config = Config(path=tmp_path, threads=2, no_recursive=True)

    entries = list_entries(tmp_path, recursive=config.recursive)
    groups = list(run_duplicate_detection(entries, config))

    assert group_names(groups) == [["a", "c"]]
