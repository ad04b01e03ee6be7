"""Three-way merge of two branches.

A merge runs in four steps:

1. Preconditions: nothing staged, the given branch exists and is not the
   current branch.
2. Ancestry: if the given head is already an ancestor of the current head
   there is nothing to do; if the current head is an ancestor of the given
   head the current branch is fast-forwarded.
3. Reconciliation: every file tracked by either head is classified against
   the merge base and the result is written to the working tree and staged.
4. A merge commit with both heads as parents records the result.

Content conflicts do not abort a merge. The conflicting file gets both
versions between conflict markers and is committed that way.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional, Tuple

from twig.constants import CONFLICT_END, CONFLICT_SEPARATOR, CONFLICT_START
from twig.core.graph import CommitGraph
from twig.core.staging import StagingArea
from twig.errors import NotFoundError, PreconditionError

logger = logging.getLogger(__name__)


class MergeAction(str, Enum):
    """What happens to one file during a three-way merge."""

    KEEP = "keep"
    TAKE_GIVEN = "take_given"
    REMOVE = "remove"
    CONFLICT = "conflict"


class MergeStrategy(str, Enum):
    NO_OP = "no_op"
    FAST_FORWARD = "fast_forward"
    THREE_WAY = "three_way"


@dataclass(frozen=True)
class MergeResult:
    """Outcome of a merge.

    Attributes:
        strategy: How the merge was resolved
        head: Current head address after the merge
        base: Merge base address
        commit: Address of the merge commit, if one was created
        conflicts: Files written with conflict markers
        updated: Files taken from the given branch
        removed: Files removed because the given branch deleted them
    """

    strategy: MergeStrategy
    head: str
    base: str
    commit: Optional[str] = None
    conflicts: Tuple[str, ...] = ()
    updated: Tuple[str, ...] = ()
    removed: Tuple[str, ...] = ()

    @property
    def has_conflicts(self) -> bool:
        return bool(self.conflicts)


def classify(
    split: Optional[str],
    current: Optional[str],
    given: Optional[str],
) -> MergeAction:
    """Decide the fate of one file from its blob addresses at three points.

    None means the file is absent at that point. Addresses are content
    hashes, so equal addresses mean equal bytes.
    """
    if current == given:
        return MergeAction.KEEP
    if split == current:
        return MergeAction.REMOVE if given is None else MergeAction.TAKE_GIVEN
    if split == given:
        return MergeAction.KEEP
    return MergeAction.CONFLICT


def conflict_content(current: Optional[bytes], given: Optional[bytes]) -> bytes:
    """Both sides of a conflicting file between conflict markers.

    An absent side contributes no bytes.
    """
    return (
        CONFLICT_START
        + (current or b"")
        + CONFLICT_SEPARATOR
        + (given or b"")
        + CONFLICT_END
    )


class MergeEngine:
    """Merges another branch into the current one."""

    def __init__(self, graph: CommitGraph, staging: StagingArea) -> None:
        self.graph = graph
        self.staging = staging
        self.state = graph.state
        self.store = graph.store
        self.worktree = graph.worktree

    def check_preconditions(self, branch_name: str) -> None:
        if self.state.has_staged_changes():
            raise PreconditionError("You have uncommitted changes.")
        if branch_name not in self.state.branches:
            raise NotFoundError("A branch with that name does not exist.")
        if branch_name == self.state.current_branch:
            raise PreconditionError("Cannot merge a branch with itself.")

    def merge(self, branch_name: str) -> MergeResult:
        """Merge ``branch_name`` into the current branch.

        Raises:
            PreconditionError: If changes are staged or the branch is current
            NotFoundError: If the branch does not exist
            WorkingTreeConflictError: If an untracked file would be overwritten
        """
        self.check_preconditions(branch_name)

        current_name = self.state.current_branch
        current_head = self.state.head
        given_head = self.state.branches[branch_name].head
        base = self.graph.merge_base(current_head, given_head)

        if base == given_head:
            logger.info("%s is already merged into %s", branch_name, current_name)
            return MergeResult(strategy=MergeStrategy.NO_OP, head=current_head, base=base)

        given = self.graph.get_commit(given_head)
        if base == current_head:
            self.graph.checkout_commit(given)
            branch = self.state.branch
            if not branch.records(given_head):
                branch.history.append(given_head)
            branch.head = given_head
            logger.info("Fast-forwarded %s to %s", current_name, given_head[:8])
            return MergeResult(
                strategy=MergeStrategy.FAST_FORWARD, head=given_head, base=base
            )

        self.graph.check_untracked(given)
        conflicts, updated, removed = self._reconcile(base, current_head, given_head)

        commit = self.graph.commit(
            f"Merged {branch_name} into {current_name}.",
            extra_parent=given_head,
            allow_empty=True,
        )
        if conflicts:
            logger.warning(
                "Merge of %s produced %d conflict(s): %s",
                branch_name,
                len(conflicts),
                ", ".join(conflicts),
            )
        return MergeResult(
            strategy=MergeStrategy.THREE_WAY,
            head=commit.address,
            base=base,
            commit=commit.address,
            conflicts=tuple(conflicts),
            updated=tuple(updated),
            removed=tuple(removed),
        )

    def _reconcile(
        self, base: str, current_head: str, given_head: str
    ) -> Tuple[List[str], List[str], List[str]]:
        split_files = self.graph.get_commit(base).files
        current_files = self.graph.get_commit(current_head).files
        given_files = self.graph.get_commit(given_head).files

        conflicts: List[str] = []
        updated: List[str] = []
        removed: List[str] = []

        for filename in sorted(set(current_files) | set(given_files)):
            ours = current_files.get(filename)
            theirs = given_files.get(filename)
            action = classify(split_files.get(filename), ours, theirs)
            logger.debug("merge %s: %s", filename, action.value)

            if action is MergeAction.TAKE_GIVEN:
                self.worktree.write(filename, self.store.read_blob(theirs))
                self.staging.add(filename)
                updated.append(filename)
            elif action is MergeAction.REMOVE:
                self.staging.remove(filename)
                removed.append(filename)
            elif action is MergeAction.CONFLICT:
                content = conflict_content(
                    self.store.read_blob(ours) if ours else None,
                    self.store.read_blob(theirs) if theirs else None,
                )
                self.worktree.write(filename, content)
                self.staging.add(filename)
                conflicts.append(filename)

        return conflicts, updated, removed
