"""Registration of remote repositories.

Only the name -> path registry is kept. Nothing is transferred.
"""

import logging
from pathlib import Path

from twig.errors import InputError, NotFoundError, PreconditionError
from twig.storage import RepositoryState

logger = logging.getLogger(__name__)


def add_remote(state: RepositoryState, name: str, path: str) -> str:
    """Register ``path`` under ``name`` and return the stored path.

    Raises:
        PreconditionError: If a remote with that name already exists
    """
    if not name or not path:
        raise InputError("Remote name and path must not be empty.")
    if name in state.remotes:
        raise PreconditionError("A remote with that name already exists.")

    stored = str(Path(path))
    state.remotes[name] = stored
    logger.info("Added remote %s -> %s", name, stored)
    return stored


def remove_remote(state: RepositoryState, name: str) -> None:
    """Forget a registered remote.

    Raises:
        NotFoundError: If no remote has that name
    """
    if name not in state.remotes:
        raise NotFoundError("A remote with that name does not exist.")
    del state.remotes[name]
    logger.info("Removed remote %s", name)
