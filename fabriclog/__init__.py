"""Parse fabric diagnostic archives, store their nodes and ports in SQLite and serve them over HTTP."""

__version__ = "0.1.0"

__all__ = ["__version__"]