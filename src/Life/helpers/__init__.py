"""Subprocess entry points."""
