"""Synchronize every repository of a GitHub owner with a live terminal status view."""

__version__ = "1.4.0"

__all__ = ["__version__"]
