"""Persisted, versioned user preferences and per-network token/pair registries."""

__version__ = "0.1.0"
