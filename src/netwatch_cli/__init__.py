"""Command line interface for netwatch."""
