"""Twig error types.

Every failure a user can trigger is a ``TwigError``. The message is the
text shown to the user; the CLI maps the subclass to an exit code.
"""

from typing import List


class TwigError(Exception):
    """Base class for all expected Twig failures."""


class InputError(TwigError):
    """Raised for malformed or missing arguments."""


class NotFoundError(TwigError):
    """Raised when a branch, commit, object, or file does not exist."""


class AmbiguousError(NotFoundError):
    """Raised when an abbreviated id matches more than one object.

    Attributes:
        prefix: The abbreviated id that was looked up.
        matches: Every full address that starts with the prefix.
    """

    def __init__(self, prefix: str, matches: List[str]) -> None:
        self.prefix = prefix
        self.matches = sorted(matches)
        super().__init__(
            f"Ambiguous id {prefix!r} matches {len(self.matches)} objects."
        )


class PreconditionError(TwigError):
    """Raised when an operation is refused in the current repository state."""


class WorkingTreeConflictError(TwigError):
    """Raised when an untracked working file would be overwritten."""

    def __init__(
        self,
        message: str = (
            "There is an untracked file in the way; "
            "delete it, or add and commit it first."
        ),
    ) -> None:
        super().__init__(message)


class ObjectCorruptedError(TwigError):
    """Raised when a stored object's content does not match its address."""


class StateError(TwigError):
    """Raised when the repository state file is unreadable or unsupported."""
