"""Adapters translating native tool output into covgate models."""
