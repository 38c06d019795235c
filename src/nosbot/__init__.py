"""Nosbot: index YouTube channels and curate nostalgia playlists."""

__version__ = "0.1.0"

__all__ = ["__version__"]
