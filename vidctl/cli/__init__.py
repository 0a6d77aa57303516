"""Command-line interface for vidctl."""
