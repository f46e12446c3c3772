"""Diff canonicalization and hunk-to-changelist tracking."""

__version__ = "0.3.0"
