"""Twig - a small local version control system.

Twig stores content-addressed snapshots of a flat working directory,
tracks branching history, and reconciles diverged branches with a
three-way merge.
"""

__version__ = "0.1.0"
__author__ = "Twig Contributors"

__all__ = ["__version__", "__author__"]
