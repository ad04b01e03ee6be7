"""Staging area management for Twig.

The staging area holds the changes that the next commit applies to the
current head: files staged for addition (filename -> blob address) and
files staged for removal (filename -> blob or tombstone address). A name is
never in both sets at once.
"""

import logging
from typing import Dict, Optional

from twig.core.graph import CommitGraph
from twig.errors import PreconditionError
from twig.storage import Blob

logger = logging.getLogger(__name__)


class StagingArea:
    """Stage additions and removals against the current head.

    The head commit is looked up through the graph, so one operation reads
    it from disk at most once.

    Attributes:
        graph: Commit graph owning the state, store and working tree
    """

    def __init__(self, graph: CommitGraph) -> None:
        self.graph = graph
        self.state = graph.state
        self.store = graph.store
        self.worktree = graph.worktree

    def head_files(self) -> Dict[str, str]:
        """File mapping of the current head commit."""
        return self.graph.head_commit().files

    def add(self, filename: str) -> Optional[Blob]:
        """Stage a working file for addition.

        If the head already tracks identical content, nothing is staged and
        any pending addition or removal of the name is dropped.

        Returns:
            The staged blob, or None if the file matches the head

        Raises:
            NotFoundError: If the file does not exist
        """
        content = self.worktree.read(filename)
        blob = self.store.put_blob(filename, content)

        self.state.staged_removals.pop(filename, None)
        if self.head_files().get(filename) == blob.address:
            self.state.staged_additions.pop(filename, None)
            logger.debug("%s matches head, nothing staged", filename)
            return None

        self.state.staged_additions[filename] = blob.address
        logger.debug("Staged %s -> %s", filename, blob.address[:8])
        return blob

    def remove(self, filename: str) -> Optional[Blob]:
        """Unstage a file and, if the head tracks it, stage its removal.

        The working copy is deleted in both cases.

        Returns:
            The blob recorded for the removal, or None if only unstaged

        Raises:
            PreconditionError: If the file is neither staged nor tracked
        """
        tracked = filename in self.head_files()
        if filename not in self.state.staged_additions and not tracked:
            raise PreconditionError("No reason to remove the file.")

        self.state.staged_additions.pop(filename, None)
        if not tracked:
            self.worktree.delete(filename)
            logger.debug("Unstaged and deleted %s", filename)
            return None

        if self.worktree.exists(filename):
            blob = self.store.put_blob(filename, self.worktree.read(filename))
            self.worktree.delete(filename)
        else:
            blob = self.store.tombstone(filename)
        self.state.staged_removals[filename] = blob.address
        logger.debug("Staged removal of %s", filename)
        return blob
