"""Grut - a minimal local version control engine.

Grut records immutable, content-addressed snapshots of files, links them
into a single linear history and shows line-level differences between
historical versions of a file.
"""

__version__ = "0.1.0"
__author__ = "Grut Contributors"

__all__ = ["__version__", "__author__"]
