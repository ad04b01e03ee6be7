"""Repository facade.

A ``Repository`` binds the object store, the state file and the working
tree of one workspace, and exposes every user-level operation. Each
operation mutates the in-memory state only; ``save()`` writes it back.
Used as a context manager, the state is saved when the block exits
without an exception, so a failed operation leaves the stored state as it
was.

Example:
    >>> with Repository.open(Path.cwd()) as repo:
    ...     repo.add("notes.txt")
    ...     repo.commit("Add notes")
"""

import logging
import shutil
from pathlib import Path
from typing import Any, List, Optional

from twig.constants import COMMITS_DIR, OBJECTS_DIR, TWIG_DIR
from twig.core.graph import Clock, CommitGraph
from twig.core.merge import MergeEngine, MergeResult
from twig.core.remotes import add_remote, remove_remote
from twig.core.staging import StagingArea
from twig.core.status import StatusReport, compute_status
from twig.core.worktree import WorkingTree
from twig.errors import PreconditionError
from twig.storage import Blob, Branch, Commit, ObjectStore, RepositoryState, StateFile

logger = logging.getLogger(__name__)


class Repository:
    """One Twig repository rooted at a workspace directory.

    Attributes:
        root: Workspace root
        twig_dir: Path to the .twig directory
        state: In-memory repository state
        store: ObjectStore for blobs and commits
        worktree: Working tree access
        graph: Commit graph operations
        staging: Staging area operations
        merger: Merge engine
    """

    def __init__(
        self,
        root: Path,
        state: RepositoryState,
        clock: Optional[Clock] = None,
    ) -> None:
        self.root = Path(root)
        self.twig_dir = self.root / TWIG_DIR
        self.state = state
        self.state_file = StateFile(self.twig_dir)
        self.store = ObjectStore(self.twig_dir)
        self.worktree = WorkingTree(self.root)
        self.graph = CommitGraph(state, self.store, self.worktree, clock=clock)
        self.staging = StagingArea(self.graph)
        self.merger = MergeEngine(self.graph, self.staging)

    @classmethod
    def init(cls, root: Path, clock: Optional[Clock] = None) -> "Repository":
        """Create a new repository with its root commit.

        Raises:
            PreconditionError: If a repository already exists at ``root``
        """
        twig_dir = Path(root) / TWIG_DIR
        if twig_dir.exists():
            raise PreconditionError(
                "A Twig version-control system already exists in the current directory."
            )

        try:
            twig_dir.mkdir()
            (twig_dir / OBJECTS_DIR).mkdir()
            (twig_dir / COMMITS_DIR).mkdir()

            repo = cls(root, RepositoryState(), clock=clock)
            repo.graph.initialize()
            repo.save()
        except Exception:
            # Clean up partial initialization
            if twig_dir.exists():
                shutil.rmtree(twig_dir)
            raise

        logger.info("Initialized repository in %s", twig_dir)
        return repo

    @classmethod
    def open(cls, root: Path, clock: Optional[Clock] = None) -> "Repository":
        """Load an existing repository.

        Raises:
            PreconditionError: If ``root`` holds no repository
            StateError: If the state file is unreadable
        """
        state_file = StateFile(Path(root) / TWIG_DIR)
        if not state_file.exists():
            raise PreconditionError("Not in an initialized Twig directory.")
        return cls(root, state_file.load(), clock=clock)

    def save(self) -> None:
        self.state_file.save(self.state)

    def __enter__(self) -> "Repository":
        return self

    def __exit__(self, exc_type: Any, *args: Any) -> None:
        if exc_type is None:
            self.save()

    # -- Operations --

    def add(self, filename: str) -> Optional[Blob]:
        return self.staging.add(filename)

    def rm(self, filename: str) -> Optional[Blob]:
        return self.staging.remove(filename)

    def commit(self, message: str) -> Commit:
        return self.graph.commit(message)

    def log(self) -> List[Commit]:
        return self.graph.log()

    def global_log(self) -> List[Commit]:
        return self.graph.global_log()

    def find(self, message: str) -> List[str]:
        return self.graph.find(message)

    def status(self) -> StatusReport:
        return compute_status(self.state, self.store, self.worktree)

    def checkout_branch(self, name: str) -> Commit:
        return self.graph.checkout_branch(name)

    def checkout_file(self, filename: str, commit_id: Optional[str] = None) -> None:
        self.graph.checkout_file(filename, commit_id)

    def branch(self, name: str) -> Branch:
        return self.graph.branch(name)

    def remove_branch(self, name: str) -> None:
        self.graph.remove_branch(name)

    def reset(self, commit_id: str) -> Commit:
        return self.graph.reset(commit_id)

    def merge(self, branch_name: str) -> MergeResult:
        return self.merger.merge(branch_name)

    def add_remote(self, name: str, path: str) -> str:
        return add_remote(self.state, name, path)

    def remove_remote(self, name: str) -> None:
        remove_remote(self.state, name)

    # -- Queries --

    def head_commit(self) -> Commit:
        return self.graph.head_commit()

    def is_ancestor(self, ancestor: str, descendant: str) -> bool:
        return self.graph.is_ancestor(ancestor, descendant)
