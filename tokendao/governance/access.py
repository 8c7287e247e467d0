"""
Role checks for the governance engine.

Two fixed identities: the *owner* tunes engine parameters, the
*chairperson* submits proposals. Neither role can be transferred.
"""

from typing import Any, Dict

from ..abi import normalize_address
from .errors import NotChairpersonError, NotOwnerError


class AccessControl:
    """Owner / chairperson gate, checked by address equality."""

    def __init__(self, owner: str, chairperson: str):
        self._owner = normalize_address(owner)
        self._chairperson = normalize_address(chairperson)

    @property
    def owner(self) -> str:
        return self._owner

    @property
    def chairperson(self) -> str:
        return self._chairperson

    def is_owner(self, caller: str) -> bool:
        return normalize_address(caller) == self._owner

    def is_chairperson(self, caller: str) -> bool:
        return normalize_address(caller) == self._chairperson

    def require_owner(self, caller: str):
        if not self.is_owner(caller):
            raise NotOwnerError()

    def require_chairperson(self, caller: str):
        if not self.is_chairperson(caller):
            raise NotChairpersonError()

    def to_dict(self) -> Dict[str, Any]:
        return {"owner": self._owner, "chairperson": self._chairperson}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "AccessControl":
        return cls(owner=data["owner"], chairperson=data["chairperson"])

    def __repr__(self) -> str:
        return f"<AccessControl owner={self._owner} chairperson={self._chairperson}>"
