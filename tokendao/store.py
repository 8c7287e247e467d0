"""
TokenDAO State Store — JSON persistence

Keeps a deployed token and its DAO in a single JSON document so separate
CLI invocations operate on the same treasury.

Layout:
    {
        "version": 1,
        "token": Token.to_dict(),
        "dao":   DAO.to_dict()
    }

Usage:
    store = JsonStateStore("dao_state.json")
    store.save(token, dao)
    token, dao = store.load()
"""

import json
import os
import tempfile
import time
from pathlib import Path
from typing import Any, Callable, Dict, Tuple, Union

from .exceptions import StateNotFoundError, TokenDAOException
from .governance.dao import DAO
from .logger import get_logger
from .tokens.erc20 import Token

logger = get_logger(__name__)

STATE_VERSION = 1


class JsonStateStore:
    """File-backed store for one token + DAO pair."""

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)

    def exists(self) -> bool:
        return self.path.exists()

    def save(self, token: Token, dao: DAO) -> None:
        """Write state atomically (temp file in the same directory, then replace)."""
        document: Dict[str, Any] = {
            "version": STATE_VERSION,
            "token": token.to_dict(),
            "dao": dao.to_dict(),
        }
        directory = self.path.parent if str(self.path.parent) else Path(".")
        directory.mkdir(parents=True, exist_ok=True)

        fd, tmp_name = tempfile.mkstemp(prefix=".tokendao-", suffix=".json", dir=directory)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(document, f, indent=2, sort_keys=True)
            os.replace(tmp_name, self.path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise
        logger.debug(f"State saved to {self.path}")

    def load(self, time_fn: Callable[[], float] = time.time) -> Tuple[Token, DAO]:
        """
        Load the token and DAO.

        Raises:
            StateNotFoundError: no state file at ``path``
            TokenDAOException: file is unreadable, incomplete or has an unknown version
        """
        if not self.path.exists():
            raise StateNotFoundError(
                f"No DAO state at {self.path} (run 'tokendao deploy' first)"
            )
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                document = json.load(f)
        except json.JSONDecodeError as e:
            raise TokenDAOException(f"Corrupt state file {self.path}: {e}") from e

        if not isinstance(document, dict):
            raise TokenDAOException(f"Corrupt state file {self.path}: expected a JSON object")

        version = document.get("version")
        if version != STATE_VERSION:
            raise TokenDAOException(f"Unsupported state version {version!r} in {self.path}")

        try:
            token = Token.from_dict(document["token"])
            dao = DAO.from_dict(document["dao"], token, time_fn=time_fn)
        except (KeyError, TypeError, ValueError) as e:
            raise TokenDAOException(f"Corrupt state file {self.path}: {e!r}") from e
        logger.debug(f"State loaded from {self.path}")
        return token, dao

    def __repr__(self) -> str:
        return f"<JsonStateStore {self.path}>"
