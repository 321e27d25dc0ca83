"""Bundled reference data: the SPDX license list subset and the file type table."""
