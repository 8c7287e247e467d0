"""
Governance Proposals

A proposal carries one encoded action (ABI call data plus the recipient it
is sent to) and a free-text description. Its lifecycle is derived from the
clock and the live debating period:

    OPEN      now <  created_at + duration       votes accepted
    CLOSABLE  now >= created_at + duration       waiting for finish_proposal
    FINISHED  finish_proposal has run            terminal
"""

from dataclasses import dataclass
from enum import IntEnum
from typing import Any, Dict, List, Optional

from ..abi import normalize_address
from ..logger import get_logger
from .errors import ProposalAlreadyFinishedError, ProposalNotFoundError

logger = get_logger(__name__)


class ProposalStatus(IntEnum):
    """Lifecycle stage."""
    OPEN = 0        # Debating window running
    CLOSABLE = 1    # Window elapsed, not yet finished
    FINISHED = 2    # Finalized (accepted or not)


@dataclass
class Proposal:
    """
    A single governance proposal.

    Fields:
        id:           1-based identifier, never reused
        call_data:    ABI call data executed if the proposal passes
        recipient:    Address the call data is sent to
        description:  Free text
        created_at:   Unix timestamp of creation
        finished:     Set once by finish_proposal
    """
    id: int
    call_data: bytes
    recipient: str
    description: str
    created_at: int
    finished: bool = False

    def voting_end(self, debating_period_duration: int) -> int:
        return self.created_at + debating_period_duration

    def is_open(self, now: int, debating_period_duration: int) -> bool:
        return now < self.voting_end(debating_period_duration)

    def status(self, now: int, debating_period_duration: int) -> ProposalStatus:
        if self.finished:
            return ProposalStatus.FINISHED
        if self.is_open(now, debating_period_duration):
            return ProposalStatus.OPEN
        return ProposalStatus.CLOSABLE

    def mark_finished(self):
        if self.finished:
            raise ProposalAlreadyFinishedError()
        self.finished = True

    # ── Serialization ─────────────────────────────────────────────────

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "callData": "0x" + self.call_data.hex(),
            "recipient": self.recipient,
            "description": self.description,
            "createdAt": self.created_at,
            "finished": self.finished,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Proposal":
        call_data = data.get("callData", "0x")
        return cls(
            id=int(data["id"]),
            call_data=bytes.fromhex(call_data[2:] if call_data.startswith("0x") else call_data),
            recipient=normalize_address(data["recipient"]),
            description=data.get("description", ""),
            created_at=int(data["createdAt"]),
            finished=bool(data.get("finished", False)),
        )

    def __repr__(self) -> str:
        state = "finished" if self.finished else "pending"
        return f"<Proposal #{self.id} '{self.description}' → {self.recipient} {state}>"


class ProposalStore:
    """Allocates sequential proposal ids and keeps every proposal ever created."""

    def __init__(self):
        self._proposals: Dict[int, Proposal] = {}
        self._next_id = 1

    def add(
        self,
        call_data: bytes,
        recipient: str,
        description: str,
        created_at: int,
    ) -> Proposal:
        proposal = Proposal(
            id=self._next_id,
            call_data=bytes(call_data),
            recipient=normalize_address(recipient),
            description=description,
            created_at=created_at,
        )
        self._proposals[proposal.id] = proposal
        self._next_id += 1
        logger.info(
            f"Proposal #{proposal.id} created: '{description}' → {proposal.recipient}"
        )
        return proposal

    def get(self, proposal_id: int) -> Optional[Proposal]:
        return self._proposals.get(proposal_id)

    def get_or_raise(self, proposal_id: int) -> Proposal:
        proposal = self.get(proposal_id)
        if proposal is None:
            raise ProposalNotFoundError(f"Proposal #{proposal_id} does not exist")
        return proposal

    def all(self) -> List[Proposal]:
        return [self._proposals[pid] for pid in sorted(self._proposals)]

    @property
    def count(self) -> int:
        return len(self._proposals)

    # ── Serialization ─────────────────────────────────────────────────

    def to_dict(self) -> Dict[str, Any]:
        return {
            "nextId": self._next_id,
            "proposals": [p.to_dict() for p in self.all()],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ProposalStore":
        store = cls()
        for item in data.get("proposals", []):
            proposal = Proposal.from_dict(item)
            store._proposals[proposal.id] = proposal
        store._next_id = int(data.get("nextId", len(store._proposals) + 1))
        return store

    def __repr__(self) -> str:
        return f"<ProposalStore proposals={len(self._proposals)}>"
