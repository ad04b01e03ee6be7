"""Object model and codec for Twig.

Two kinds of immutable objects live in the store:

- ``Blob``: the bytes of one file. Its address is the SHA-256 of the raw
  content, so identical files share one blob no matter their name.
- ``Commit``: a snapshot of the tracked file set. Its address is the
  SHA-256 of the canonical JSON form of message, timestamp, parents and
  file mapping (sorted keys, no whitespace).

A tombstone is a content-less blob naming a file that no longer exists on
disk. It is only used to record a staged removal and is never written to
the store.
"""

import hashlib
import json
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional, Tuple

from twig.constants import HASH_ALGORITHM
from twig.errors import ObjectCorruptedError, PreconditionError

TOMBSTONE_TAG = b"tombstone\x00"


class ObjectKind(str, Enum):
    """Discriminant for the two stored object kinds."""

    BLOB = "blob"
    COMMIT = "commit"


@dataclass(frozen=True)
class Blob:
    """Immutable file snapshot.

    Attributes:
        address: Content address (SHA-256 hex)
        content: Raw bytes, or None for a tombstone
        filename: Name the file had when the blob was created
    """

    address: str
    content: Optional[bytes]
    filename: str = ""
    kind: ObjectKind = field(default=ObjectKind.BLOB, init=False)

    @property
    def is_tombstone(self) -> bool:
        return self.content is None


@dataclass(frozen=True)
class Commit:
    """Immutable snapshot of the tracked file set.

    Attributes:
        address: Content address (SHA-256 hex)
        message: Commit message (never empty)
        timestamp: ISO 8601 UTC timestamp
        parents: Parent addresses, first parent first (0, 1 or 2 entries)
        files: Mapping of filename to blob address
    """

    address: str
    message: str
    timestamp: str
    parents: Tuple[str, ...] = ()
    files: Dict[str, str] = field(default_factory=dict)
    kind: ObjectKind = field(default=ObjectKind.COMMIT, init=False)

    @property
    def is_merge(self) -> bool:
        return len(self.parents) > 1

    @property
    def first_parent(self) -> Optional[str]:
        return self.parents[0] if self.parents else None


def hash_bytes(data: bytes) -> str:
    """Compute the SHA-256 hex digest of ``data``."""
    hasher = hashlib.new(HASH_ALGORITHM)
    hasher.update(data)
    return hasher.hexdigest()


def blob_address(content: bytes) -> str:
    return hash_bytes(content)


def tombstone_address(filename: str) -> str:
    return hash_bytes(TOMBSTONE_TAG + filename.encode("utf-8"))


def make_blob(filename: str, content: bytes) -> Blob:
    return Blob(address=blob_address(content), content=content, filename=filename)


def make_tombstone(filename: str) -> Blob:
    return Blob(address=tombstone_address(filename), content=None, filename=filename)


def canonical_json(obj: Dict[str, Any]) -> bytes:
    """Serialize ``obj`` deterministically (sorted keys, no whitespace)."""
    return json.dumps(
        obj,
        sort_keys=True,
        separators=(",", ":"),
        ensure_ascii=False,
    ).encode("utf-8")


def commit_payload(
    message: str,
    timestamp: str,
    parents: Tuple[str, ...],
    files: Dict[str, str],
) -> Dict[str, Any]:
    """Build the hashed part of a commit object."""
    return {
        "message": message,
        "timestamp": timestamp,
        "parents": list(parents),
        "files": dict(sorted(files.items())),
    }


def make_commit(
    message: str,
    timestamp: str,
    parents: Tuple[str, ...] = (),
    files: Optional[Dict[str, str]] = None,
) -> Commit:
    """Create a commit and derive its address.

    Raises:
        PreconditionError: If the message is empty
        ValueError: If more than two parents are given
    """
    if not message:
        raise PreconditionError("Please enter a commit message.")
    if len(parents) > 2:
        raise ValueError(f"A commit has at most two parents, got {len(parents)}")

    files = dict(files or {})
    payload = commit_payload(message, timestamp, tuple(parents), files)
    return Commit(
        address=hash_bytes(canonical_json(payload)),
        message=message,
        timestamp=timestamp,
        parents=tuple(parents),
        files=files,
    )


def commit_to_dict(commit: Commit) -> Dict[str, Any]:
    obj = commit_payload(commit.message, commit.timestamp, commit.parents, commit.files)
    obj["kind"] = ObjectKind.COMMIT.value
    obj["hash"] = commit.address
    return obj


def commit_from_dict(obj: Dict[str, Any], verify_hash: bool = True) -> Commit:
    """Rebuild a commit from its stored JSON form.

    Raises:
        ObjectCorruptedError: If fields are missing or the hash does not match
    """
    try:
        commit = Commit(
            address=obj["hash"],
            message=obj["message"],
            timestamp=obj["timestamp"],
            parents=tuple(obj["parents"]),
            files=dict(obj["files"]),
        )
    except (KeyError, TypeError) as e:
        raise ObjectCorruptedError(f"Malformed commit object: {e}") from e

    if verify_hash:
        payload = commit_payload(
            commit.message, commit.timestamp, commit.parents, commit.files
        )
        actual = hash_bytes(canonical_json(payload))
        if actual != commit.address:
            raise ObjectCorruptedError(
                f"Commit corrupted: expected {commit.address}, got {actual}"
            )
    return commit
