"""Utilities for covgate."""
