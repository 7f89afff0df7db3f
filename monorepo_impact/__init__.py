"""Detect which monorepo build units are affected by a change."""

__version__ = "0.1.0"
