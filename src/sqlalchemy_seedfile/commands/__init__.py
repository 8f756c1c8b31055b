"""CLI command helpers."""
