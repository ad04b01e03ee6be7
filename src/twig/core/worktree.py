"""Access to the working tree.

The working tree is the flat set of plain files directly inside the
workspace root. Subdirectories, including .twig/, are never part of it.
"""

import logging
from pathlib import Path
from typing import List

from twig.constants import TWIG_DIR
from twig.errors import InputError, NotFoundError

logger = logging.getLogger(__name__)


class WorkingTree:
    """Reads, writes and deletes working files by name.

    Attributes:
        root: Workspace root directory
    """

    def __init__(self, root: Path) -> None:
        self.root = Path(root)

    def path(self, filename: str) -> Path:
        """Resolve a flat filename inside the workspace.

        Raises:
            InputError: If the name is empty, nested, or the repository directory
        """
        if not filename or filename in (".", "..", TWIG_DIR):
            raise InputError(f"Invalid file name: {filename!r}")
        if "/" in filename or "\\" in filename:
            raise InputError(f"Only files in the working directory are supported: {filename}")
        return self.root / filename

    def exists(self, filename: str) -> bool:
        return self.path(filename).is_file()

    def read(self, filename: str) -> bytes:
        """Read a working file.

        Raises:
            NotFoundError: If the file does not exist
        """
        path = self.path(filename)
        if not path.is_file():
            raise NotFoundError("File does not exist.")
        return path.read_bytes()

    def write(self, filename: str, content: bytes) -> None:
        self.path(filename).write_bytes(content)
        logger.debug("Wrote working file %s (%d bytes)", filename, len(content))

    def delete(self, filename: str) -> bool:
        """Delete a working file; returns False if it was already gone."""
        path = self.path(filename)
        if not path.is_file():
            return False
        path.unlink()
        logger.debug("Deleted working file %s", filename)
        return True

    def files(self) -> List[str]:
        """Sorted names of all plain files in the workspace root."""
        return sorted(p.name for p in self.root.iterdir() if p.is_file())
