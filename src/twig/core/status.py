"""Read-only status projection.

Combines the current head, the staging area and the live working tree
into the five lists shown by ``twig status``. Nothing is written, not even
blobs: working files are compared by hashing them in memory.
"""

from dataclasses import dataclass, field
from typing import List

from twig.core.worktree import WorkingTree
from twig.storage import ObjectStore, RepositoryState
from twig.storage.objects import blob_address


@dataclass(frozen=True)
class StatusReport:
    """Snapshot of repository status. Every list is sorted."""

    current_branch: str
    branches: List[str] = field(default_factory=list)
    staged: List[str] = field(default_factory=list)
    removed: List[str] = field(default_factory=list)
    modified: List[str] = field(default_factory=list)
    untracked: List[str] = field(default_factory=list)

    @property
    def is_clean(self) -> bool:
        return not (self.staged or self.removed or self.modified or self.untracked)


def compute_status(
    state: RepositoryState,
    store: ObjectStore,
    worktree: WorkingTree,
) -> StatusReport:
    """Build the status report for the current repository state."""
    tracked = store.read_commit(state.head).files
    on_disk = set(worktree.files())

    modified = []
    for filename in sorted(set(tracked) | set(state.staged_additions)):
        if filename in state.staged_removals:
            continue
        expected = state.staged_additions.get(filename, tracked.get(filename))
        if filename in on_disk:
            if blob_address(worktree.read(filename)) != expected:
                modified.append(f"{filename} (modified)")
        else:
            modified.append(f"{filename} (deleted)")

    untracked = [
        filename
        for filename in sorted(on_disk)
        if (filename not in tracked and filename not in state.staged_additions)
        or filename in state.staged_removals
    ]

    return StatusReport(
        current_branch=state.current_branch,
        branches=sorted(state.branches),
        staged=sorted(state.staged_additions),
        removed=sorted(state.staged_removals),
        modified=modified,
        untracked=untracked,
    )
