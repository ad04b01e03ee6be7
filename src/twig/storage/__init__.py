"""Storage layer for Twig.

This module provides the object codec, the content-addressable object
store for blobs and commits, and persistence of the repository state.
"""

from twig.storage.object_store import ObjectNotFoundError, ObjectStore
from twig.storage.objects import Blob, Commit, ObjectKind
from twig.storage.state import Branch, RepositoryState, StateFile

__all__ = [
    "Blob",
    "Branch",
    "Commit",
    "ObjectKind",
    "ObjectStore",
    "ObjectNotFoundError",
    "RepositoryState",
    "StateFile",
]
