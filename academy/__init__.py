"""Atomics academy and tournament registration core."""
