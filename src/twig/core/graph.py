"""Commit graph and branch bookkeeping.

Commits form a DAG with parents pointing backward in time. Branches are
named pointers into it; exactly one of them is current. This module owns
every operation that moves a branch: committing, creating and deleting
branches, resetting, and checking out.
"""

import logging
from collections import deque
from datetime import datetime, timezone
from typing import Callable, Dict, List, Optional, Set, Tuple

from twig.constants import (
    DEFAULT_BRANCH,
    INITIAL_COMMIT_MESSAGE,
    INITIAL_COMMIT_TIMESTAMP,
)
from twig.core.worktree import WorkingTree
from twig.errors import (
    InputError,
    NotFoundError,
    PreconditionError,
    WorkingTreeConflictError,
)
from twig.storage import (
    Branch,
    Commit,
    ObjectKind,
    ObjectNotFoundError,
    ObjectStore,
    RepositoryState,
)
from twig.storage.objects import make_commit

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class CommitGraph:
    """Commits, branches and the current-branch selector.

    Attributes:
        state: Repository state holding branches and staged sets
        store: ObjectStore holding the commits
        worktree: Working tree updated by reset and checkout
        clock: Source of commit timestamps
    """

    def __init__(
        self,
        state: RepositoryState,
        store: ObjectStore,
        worktree: WorkingTree,
        clock: Optional[Clock] = None,
    ) -> None:
        self.state = state
        self.store = store
        self.worktree = worktree
        self.clock = clock or utc_now
        self._commits: Dict[str, Commit] = {}

    # -- Lookup --

    def get_commit(self, address: str) -> Commit:
        """Read a commit by full address, caching it for this operation."""
        commit = self._commits.get(address)
        if commit is None:
            commit = self.store.read_commit(address)
            self._commits[address] = commit
        return commit

    def head_commit(self) -> Commit:
        return self.get_commit(self.state.head)

    def resolve_commit(self, commit_id: str) -> Commit:
        """Look up a commit by full or abbreviated id.

        Raises:
            NotFoundError: If no commit has that id
            AmbiguousError: If the abbreviation matches several commits
            InputError: If the id is not hexadecimal
        """
        try:
            address = self.store.resolve(commit_id, kind=ObjectKind.COMMIT)
        except ObjectNotFoundError as e:
            raise NotFoundError("No commit with that id exists.") from e
        return self.get_commit(address)

    # -- History --

    def initialize(self) -> Commit:
        """Create the root commit and the default branch."""
        root = make_commit(INITIAL_COMMIT_MESSAGE, INITIAL_COMMIT_TIMESTAMP)
        self.store.write_commit(root)
        self._commits[root.address] = root

        self.state.branches = {
            DEFAULT_BRANCH: Branch(name=DEFAULT_BRANCH, head=root.address, history=[root.address])
        }
        self.state.current_branch = DEFAULT_BRANCH
        self.state.index_message(root.message, root.address)
        logger.info("Initialized history with root commit %s", root.address[:8])
        return root

    def commit(
        self,
        message: str,
        extra_parent: Optional[str] = None,
        allow_empty: bool = False,
    ) -> Commit:
        """Turn the staged changes into a new commit on the current branch.

        Args:
            message: Commit message
            extra_parent: Second parent, only used for merge commits
            allow_empty: Commit even when nothing is staged

        Raises:
            PreconditionError: If the message is empty or nothing is staged
        """
        if not message:
            raise PreconditionError("Please enter a commit message.")
        if not self.state.has_staged_changes() and not allow_empty:
            raise PreconditionError("No changes added to the commit.")

        head = self.head_commit()
        files = dict(head.files)
        for filename in self.state.staged_removals:
            files.pop(filename, None)
        files.update(self.state.staged_additions)

        parents: Tuple[str, ...] = (head.address,)
        if extra_parent is not None:
            parents += (extra_parent,)

        commit = make_commit(
            message=message,
            timestamp=self.clock().isoformat(),
            parents=parents,
            files=files,
        )
        self.store.write_commit(commit)
        self._commits[commit.address] = commit

        self.state.branch.advance(commit.address)
        self.state.index_message(commit.message, commit.address)
        self.state.clear_staging()
        logger.info(
            "Committed %s on %s (%d file(s))",
            commit.address[:8],
            self.state.current_branch,
            len(files),
        )
        return commit

    def log(self) -> List[Commit]:
        """Commits from the current head back to the root along first parents."""
        commits = []
        address: Optional[str] = self.state.head
        while address is not None:
            commit = self.get_commit(address)
            commits.append(commit)
            address = commit.first_parent
        return commits

    def global_log(self) -> List[Commit]:
        """Every stored commit, oldest first."""
        commits = [self.get_commit(a) for a in self.store.iter_commits()]
        return sorted(commits, key=lambda c: (c.timestamp, c.address))

    def find(self, message: str) -> List[str]:
        """Addresses of all commits with exactly this message.

        Raises:
            NotFoundError: If no commit has the message
        """
        addresses = self.state.messages.get(message)
        if not addresses:
            raise NotFoundError("Found no commit with that message.")
        return list(addresses)

    # -- Branches --

    def branch(self, name: str) -> Branch:
        """Create a branch at the current head.

        Raises:
            PreconditionError: If a branch with that name already exists
        """
        if not name:
            raise InputError("Branch name must not be empty.")
        if name in self.state.branches:
            raise PreconditionError("A branch with that name already exists.")

        current = self.state.branch
        new_branch = Branch(name=name, head=current.head, history=list(current.history))
        self.state.branches[name] = new_branch
        self.state.record_split_point(current.head, current.name, name)
        logger.info("Created branch %s at %s", name, current.head[:8])
        return new_branch

    def remove_branch(self, name: str) -> None:
        """Delete a branch pointer; its commits stay in the store.

        Raises:
            NotFoundError: If the branch does not exist
            PreconditionError: If it is the current branch
        """
        if name not in self.state.branches:
            raise NotFoundError("A branch with that name does not exist.")
        if name == self.state.current_branch:
            raise PreconditionError("Cannot remove the current branch.")

        del self.state.branches[name]
        self.state.forget_branch_split_points(name)
        logger.info("Removed branch %s", name)

    # -- Checkout --

    def checkout_branch(self, name: str) -> Commit:
        """Make ``name`` the current branch and check out its head.

        Raises:
            NotFoundError: If the branch does not exist
            PreconditionError: If it is already the current branch
            WorkingTreeConflictError: If an untracked file would be overwritten
        """
        if name not in self.state.branches:
            raise NotFoundError("No such branch exists.")
        if name == self.state.current_branch:
            raise PreconditionError("No need to checkout the current branch.")

        target = self.get_commit(self.state.branches[name].head)
        self.checkout_commit(target)
        self.state.current_branch = name
        logger.info("Switched to branch %s", name)
        return target

    def checkout_file(self, filename: str, commit_id: Optional[str] = None) -> None:
        """Restore one working file from the head or from a given commit.

        Raises:
            NotFoundError: If the commit or the file in it does not exist
        """
        commit = self.resolve_commit(commit_id) if commit_id else self.head_commit()
        address = commit.files.get(filename)
        if address is None:
            raise NotFoundError("File does not exist in that commit.")
        self.worktree.write(filename, self.store.read_blob(address))

    def checkout_commit(self, target: Commit) -> None:
        """Replace the tracked working files with ``target``'s and clear staging.

        Raises:
            WorkingTreeConflictError: If a file ``target`` tracks is on disk but
                untracked by the current head
        """
        head_files = self.head_commit().files
        self.check_untracked(target)

        for filename in head_files:
            if filename not in target.files:
                self.worktree.delete(filename)
        for filename, address in target.files.items():
            self.worktree.write(filename, self.store.read_blob(address))
        self.state.clear_staging()

    def check_untracked(self, target: Commit) -> None:
        head_files = self.head_commit().files
        for filename in target.files:
            if filename not in head_files and self.worktree.exists(filename):
                raise WorkingTreeConflictError()

    def reset(self, commit_id: str) -> Commit:
        """Check out an arbitrary commit and move a branch head to it.

        The current branch moves when its history records the commit;
        otherwise the current branch switches to the branch that records it,
        preferring the default branch.

        Raises:
            NotFoundError: If no commit has that id
            WorkingTreeConflictError: If an untracked file would be overwritten
        """
        target = self.resolve_commit(commit_id)
        self.checkout_commit(target)

        branch = self.state.branch
        if not branch.records(target.address):
            branch = self.state.find_branch_recording(
                target.address, prefer=self.state.current_branch
            ) or branch
        if not branch.records(target.address):
            branch.history.append(target.address)

        branch.head = target.address
        self.state.current_branch = branch.name
        logger.info("Reset %s to %s", branch.name, target.address[:8])
        return target

    # -- Ancestry --

    def ancestor_depths(self, address: str) -> Dict[str, int]:
        """Breadth-first distances from ``address`` to all its ancestors.

        The commit itself is included at depth 0. Every parent link is
        followed, not only first parents.
        """
        depths = {address: 0}
        queue = deque([address])
        while queue:
            current = queue.popleft()
            for parent in self.get_commit(current).parents:
                if parent not in depths:
                    depths[parent] = depths[current] + 1
                    queue.append(parent)
        return depths

    def is_ancestor(self, ancestor: str, descendant: str) -> bool:
        return ancestor in self.ancestor_depths(descendant)

    def merge_base(self, commit_a: str, commit_b: str) -> str:
        """Find the nearest common ancestor of two commits.

        Candidates are common ancestors that are not ancestors of another
        common ancestor. Ties are broken by BFS depth from the two heads,
        then by lowest address.

        Raises:
            NotFoundError: If the commits share no ancestor
        """
        depths_a = self.ancestor_depths(commit_a)
        depths_b = self.ancestor_depths(commit_b)
        common = set(depths_a) & set(depths_b)
        if not common:
            raise NotFoundError(
                f"No common ancestor between {commit_a[:8]} and {commit_b[:8]}."
            )

        dominated: Set[str] = set()
        for candidate in sorted(common, key=lambda c: depths_a[c] + depths_b[c]):
            if candidate in dominated:
                continue
            dominated.update(a for a in self.ancestor_depths(candidate) if a != candidate)
        best = common - dominated

        base = min(
            best,
            key=lambda c: (max(depths_a[c], depths_b[c]), depths_a[c] + depths_b[c], c),
        )
        logger.debug(
            "Merge base of %s and %s is %s", commit_a[:8], commit_b[:8], base[:8]
        )
        return base
