"""Content-addressable object storage for Twig.

Blobs are stored raw under .twig/objects/ with Git-like sharding and
optional gzip compression for very large files. Commits are stored as one
JSON document each under .twig/commits/. Both are write-once: an object
that already exists is never rewritten.
"""

import gzip
import json
import logging
import os
import re
import tempfile
from pathlib import Path
from typing import Iterator, List, Optional, Union

from twig.constants import COMMITS_DIR, GZIP_THRESHOLD, HASH_LENGTH, OBJECTS_DIR
from twig.errors import (
    AmbiguousError,
    InputError,
    NotFoundError,
    ObjectCorruptedError,
)
from twig.storage.objects import (
    Blob,
    Commit,
    ObjectKind,
    blob_address,
    commit_from_dict,
    commit_to_dict,
    make_blob,
    make_tombstone,
)

logger = logging.getLogger(__name__)

_HEX_RE = re.compile(r"^[0-9a-f]+$")


class ObjectNotFoundError(NotFoundError):
    """Raised when an object cannot be found in the object store."""


def atomic_write(path: Path, data: bytes) -> None:
    """Write ``data`` to ``path`` via a temp file and rename.

    Raises:
        OSError: If the write fails (permissions, disk full, etc.)
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp_fd, tmp_path = tempfile.mkstemp(
        dir=path.parent,
        prefix=".tmp_",
        suffix=path.suffix or ".obj",
    )
    try:
        with os.fdopen(tmp_fd, "wb") as f:
            f.write(data)
            f.flush()
            os.fsync(f.fileno())
        os.replace(tmp_path, path)
    except Exception:
        if os.path.exists(tmp_path):
            os.unlink(tmp_path)
        raise


class ObjectStore:
    """Content-addressable storage for blobs and commits.

    Storage layout:
        .twig/objects/<hash[:2]>/<hash[2:]>      # Raw blob
        .twig/objects/<hash[:2]>/<hash[2:]>.gz   # Compressed blob
        .twig/commits/<hash>                     # Commit JSON

    Example:
        >>> store = ObjectStore(Path(".twig"))
        >>> blob = store.put_blob("hello.txt", b"hello\\n")
        >>> store.read_blob(blob.address)
        b'hello\\n'
    """

    def __init__(self, twig_dir: Path) -> None:
        """Initialize the object store.

        Args:
            twig_dir: Path to .twig directory

        Raises:
            ValueError: If twig_dir doesn't exist
        """
        self.twig_dir = Path(twig_dir)
        self.objects_dir = self.twig_dir / OBJECTS_DIR
        self.commits_dir = self.twig_dir / COMMITS_DIR

        if not self.twig_dir.exists():
            raise ValueError(f"Twig directory not found: {twig_dir}")

    # -- Blobs --

    def write_blob(self, content: bytes, compress: Optional[bool] = None) -> str:
        """Write raw content to the store and return its address.

        Existing blobs are not rewritten (deduplication).

        Args:
            content: Binary content to store
            compress: Force compression (True), no compression (False), or
                     auto-compress at GZIP_THRESHOLD (None, default)
        """
        address = blob_address(content)
        if self.blob_exists(address):
            return address

        should_compress = compress
        if compress is None:
            should_compress = len(content) >= GZIP_THRESHOLD

        data = gzip.compress(content, compresslevel=6) if should_compress else content
        blob_path = self._get_blob_path(address, compressed=bool(should_compress))
        atomic_write(blob_path, data)
        logger.debug("Wrote blob %s (%d bytes)", address[:8], len(content))
        return address

    def put_blob(self, filename: str, content: bytes) -> Blob:
        """Store ``content`` as a blob remembered under ``filename``."""
        blob = make_blob(filename, content)
        self.write_blob(content)
        return blob

    @staticmethod
    def tombstone(filename: str) -> Blob:
        """Marker blob for a file that no longer exists on disk."""
        return make_tombstone(filename)

    def read_blob(self, address: str, verify_hash: bool = True) -> bytes:
        """Read a blob's content.

        Raises:
            ObjectNotFoundError: If the blob doesn't exist
            ObjectCorruptedError: If hash verification fails
            InputError: If the address is malformed
        """
        self._validate_hash(address)

        compressed_path = self._get_blob_path(address, compressed=True)
        uncompressed_path = self._get_blob_path(address, compressed=False)

        if compressed_path.exists():
            content = gzip.decompress(compressed_path.read_bytes())
        elif uncompressed_path.exists():
            content = uncompressed_path.read_bytes()
        else:
            raise ObjectNotFoundError(f"Blob not found: {address}")

        if verify_hash:
            actual = blob_address(content)
            if actual != address:
                raise ObjectCorruptedError(
                    f"Blob corrupted: expected {address}, got {actual}"
                )
        return content

    def load_blob(self, address: str, filename: str = "") -> Blob:
        return Blob(address=address, content=self.read_blob(address), filename=filename)

    def blob_exists(self, address: str) -> bool:
        try:
            self._validate_hash(address)
        except InputError:
            return False
        return (
            self._get_blob_path(address, compressed=True).exists()
            or self._get_blob_path(address, compressed=False).exists()
        )

    # -- Commits --

    def write_commit(self, commit: Commit) -> str:
        """Persist a commit; an already stored commit is left untouched."""
        commit_path = self.commits_dir / commit.address
        if commit_path.exists():
            return commit.address

        json_str = json.dumps(commit_to_dict(commit), indent=2, ensure_ascii=False)
        atomic_write(commit_path, json_str.encode("utf-8"))
        logger.debug("Wrote commit %s %r", commit.address[:8], commit.message)
        return commit.address

    def read_commit(self, address: str) -> Commit:
        """Read a commit by its full address.

        Raises:
            ObjectNotFoundError: If the commit doesn't exist
            ObjectCorruptedError: If the file is unreadable or its hash mismatches
        """
        self._validate_hash(address)
        commit_path = self.commits_dir / address
        if not commit_path.exists():
            raise ObjectNotFoundError(f"Commit not found: {address}")

        try:
            with open(commit_path, "r", encoding="utf-8") as f:
                obj = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise ObjectCorruptedError(f"Failed to read commit {address}: {e}") from e

        commit = commit_from_dict(obj)
        if commit.address != address:
            raise ObjectCorruptedError(
                f"Commit hash mismatch: expected {address}, got {commit.address}"
            )
        return commit

    def commit_exists(self, address: str) -> bool:
        return (self.commits_dir / address).exists()

    def iter_commits(self) -> Iterator[str]:
        if not self.commits_dir.exists():
            return
        for path in self.commits_dir.iterdir():
            if path.is_file() and not path.name.startswith("."):
                yield path.name

    def iter_blobs(self) -> Iterator[str]:
        if not self.objects_dir.exists():
            return
        for shard in self.objects_dir.iterdir():
            if not shard.is_dir():
                continue
            for path in shard.iterdir():
                if path.name.startswith("."):
                    continue
                name = path.name[:-3] if path.name.endswith(".gz") else path.name
                yield shard.name + name

    # -- Lookup --

    def resolve(self, prefix: str, kind: Optional[ObjectKind] = None) -> str:
        """Expand an abbreviated address to the unique full address.

        Args:
            prefix: At least one hex character
            kind: Restrict the search to one object kind

        Raises:
            InputError: If the prefix is empty or not hexadecimal
            ObjectNotFoundError: If nothing matches
            AmbiguousError: If more than one object matches
        """
        prefix = prefix.strip().lower()
        if not prefix or len(prefix) > HASH_LENGTH or not _HEX_RE.match(prefix):
            raise InputError(f"Invalid object id: {prefix!r}")

        candidates: List[str] = []
        if kind in (None, ObjectKind.COMMIT):
            candidates.extend(a for a in self.iter_commits() if a.startswith(prefix))
        if kind in (None, ObjectKind.BLOB):
            candidates.extend(a for a in self.iter_blobs() if a.startswith(prefix))

        matches = sorted(set(candidates))
        if not matches:
            raise ObjectNotFoundError(f"No object with id {prefix} exists.")
        if len(matches) > 1:
            raise AmbiguousError(prefix, matches)
        return matches[0]

    def get_object(self, address: str) -> Union[Blob, Commit]:
        """Fetch a blob or commit by full or abbreviated address."""
        full = self.resolve(address)
        if self.commit_exists(full):
            return self.read_commit(full)
        return self.load_blob(full)

    # -- Internal --

    def _get_blob_path(self, address: str, compressed: bool = False) -> Path:
        """Sharded path: objects/<hash[:2]>/<hash[2:]>[.gz]"""
        filename = f"{address[2:]}.gz" if compressed else address[2:]
        return self.objects_dir / address[:2] / filename

    def _validate_hash(self, address: str) -> None:
        if not isinstance(address, str):
            raise InputError(f"Hash must be string, got {type(address)}")
        if len(address) != HASH_LENGTH:
            raise InputError(
                f"Hash must be {HASH_LENGTH} characters, got {len(address)}"
            )
        if not _HEX_RE.match(address):
            raise InputError(f"Hash must be lowercase hexadecimal: {address!r}")
