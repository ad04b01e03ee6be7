"""Repository state aggregate and its persistence.

The whole mutable side of a repository is one ``RepositoryState`` value:
branch pointers, the current branch, the staging area, the message index,
split-point records and registered remotes. Commits and blobs are not part
of it; the state only holds their addresses.

The state is stored as one JSON document at .twig/state.json. It is read in
full at the start of an operation and replaced in full (temp file + rename)
at the end, never edited in place.
"""

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

from twig.constants import DEFAULT_BRANCH, STATE_FILE, STATE_VERSION
from twig.errors import StateError
from twig.storage.object_store import atomic_write

logger = logging.getLogger(__name__)


@dataclass
class Branch:
    """Named, mutable pointer to a commit.

    Attributes:
        name: Branch name
        head: Address of the head commit
        history: Addresses of every commit this branch has recorded, oldest first
    """

    name: str
    head: str
    history: List[str] = field(default_factory=list)

    def advance(self, address: str) -> None:
        self.history.append(address)
        self.head = address

    def records(self, address: str) -> bool:
        return address in self.history

    def to_dict(self) -> Dict[str, Any]:
        return {"head": self.head, "history": list(self.history)}

    @classmethod
    def from_dict(cls, name: str, data: Dict[str, Any]) -> "Branch":
        return cls(name=name, head=data["head"], history=list(data.get("history", [])))


@dataclass
class RepositoryState:
    """Aggregate mutable state of one repository."""

    branches: Dict[str, Branch] = field(default_factory=dict)
    current_branch: str = ""
    staged_additions: Dict[str, str] = field(default_factory=dict)
    staged_removals: Dict[str, str] = field(default_factory=dict)
    messages: Dict[str, List[str]] = field(default_factory=dict)
    split_points: Dict[str, List[str]] = field(default_factory=dict)
    remotes: Dict[str, str] = field(default_factory=dict)

    @property
    def branch(self) -> Branch:
        """The current branch."""
        try:
            return self.branches[self.current_branch]
        except KeyError as e:
            raise StateError(f"Current branch {self.current_branch!r} is missing") from e

    @property
    def head(self) -> str:
        """Address of the current head commit."""
        return self.branch.head

    def has_staged_changes(self) -> bool:
        return bool(self.staged_additions or self.staged_removals)

    def clear_staging(self) -> None:
        self.staged_additions.clear()
        self.staged_removals.clear()

    def index_message(self, message: str, address: str) -> None:
        addresses = self.messages.setdefault(message, [])
        if address not in addresses:
            addresses.append(address)

    def record_split_point(self, address: str, *branch_names: str) -> None:
        names = self.split_points.setdefault(address, [])
        for name in branch_names:
            if name not in names:
                names.append(name)

    def forget_branch_split_points(self, name: str) -> None:
        for address in [a for a, names in self.split_points.items() if name in names]:
            del self.split_points[address]

    def find_branch_recording(
        self, address: str, prefer: Optional[str] = None
    ) -> Optional[Branch]:
        """Return a branch whose history records ``address``.

        ``prefer`` is checked first, then the default branch, then the rest by name.
        """
        order = [n for n in (prefer, DEFAULT_BRANCH) if n in self.branches]
        order += sorted(n for n in self.branches if n not in order)
        for name in order:
            if self.branches[name].records(address):
                return self.branches[name]
        return None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "version": STATE_VERSION,
            "current_branch": self.current_branch,
            "branches": {
                name: branch.to_dict() for name, branch in sorted(self.branches.items())
            },
            "staged_additions": dict(sorted(self.staged_additions.items())),
            "staged_removals": dict(sorted(self.staged_removals.items())),
            "messages": {m: list(a) for m, a in self.messages.items()},
            "split_points": {a: list(n) for a, n in self.split_points.items()},
            "remotes": dict(sorted(self.remotes.items())),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "RepositoryState":
        """Rebuild state from its JSON form.

        Raises:
            StateError: If the version is unsupported or fields are malformed
        """
        if data.get("version") != STATE_VERSION:
            raise StateError(f"Unsupported state version: {data.get('version')}")
        try:
            return cls(
                branches={
                    name: Branch.from_dict(name, raw)
                    for name, raw in data["branches"].items()
                },
                current_branch=data["current_branch"],
                staged_additions=dict(data.get("staged_additions", {})),
                staged_removals=dict(data.get("staged_removals", {})),
                messages={m: list(a) for m, a in data.get("messages", {}).items()},
                split_points={a: list(n) for a, n in data.get("split_points", {}).items()},
                remotes=dict(data.get("remotes", {})),
            )
        except (KeyError, TypeError, AttributeError) as e:
            raise StateError(f"Corrupted state file: {e}") from e


class StateFile:
    """Loads and saves ``RepositoryState`` for one repository."""

    def __init__(self, twig_dir: Path) -> None:
        self.twig_dir = Path(twig_dir)
        self.path = self.twig_dir / STATE_FILE

    def exists(self) -> bool:
        return self.path.exists()

    def load(self) -> RepositoryState:
        """Load state from disk.

        Raises:
            StateError: If the file is missing, corrupted, or a newer version
        """
        if not self.path.exists():
            raise StateError(f"No repository state found at {self.path}")

        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except json.JSONDecodeError as e:
            raise StateError(f"Corrupted state file: {e}") from e
        except OSError as e:
            raise StateError(f"Failed to read state file: {e}") from e

        state = RepositoryState.from_dict(data)
        logger.debug(
            "Loaded state: %d branch(es), current %r",
            len(state.branches),
            state.current_branch,
        )
        return state

    def save(self, state: RepositoryState) -> None:
        """Replace the state file with ``state``."""
        data = json.dumps(state.to_dict(), indent=2, ensure_ascii=False)
        atomic_write(self.path, data.encode("utf-8"))
        logger.debug("Saved state to %s", self.path)
