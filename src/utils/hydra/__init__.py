"""Hydra integration (job callbacks)."""
