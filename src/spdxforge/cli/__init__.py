"""Command-line interface for spdxforge."""
