"""Core engine layer for Twig.

This module provides the core version control operations: staging, commit
formation, branch bookkeeping, merging, and status reporting.
"""

from twig.core.graph import CommitGraph
from twig.core.merge import MergeEngine, MergeResult, MergeStrategy
from twig.core.repository import Repository
from twig.core.staging import StagingArea
from twig.core.status import StatusReport, compute_status
from twig.core.worktree import WorkingTree

__all__ = [
    "CommitGraph",
    "MergeEngine",
    "MergeResult",
    "MergeStrategy",
    "Repository",
    "StagingArea",
    "StatusReport",
    "WorkingTree",
    "compute_status",
]
