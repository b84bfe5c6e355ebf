"""Command-line interface for Deduplicator."""
