"""
Deposit-Weighted Ballot Box

Implements:
  - 1 deposited token = 1 vote, weight fixed at the moment of voting
  - For / Against tallies per proposal
  - One ballot per account per proposal, ever
  - Withdrawal lock pointer: the latest proposal each depositor voted on
"""

from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Set

from ..abi import normalize_address
from ..logger import get_logger
from .errors import DuplicateVoteError, NoTokensError, ProposalNotActiveError
from .proposals import ProposalStore

logger = get_logger(__name__)


@dataclass(frozen=True)
class VoteRecord:
    """An individual ballot."""
    proposal_id: int
    voter: str
    support: bool
    weight: int
    timestamp: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "event": "Vote",
            "proposalId": self.proposal_id,
            "voter": self.voter,
            "support": self.support,
            "weight": self.weight,
            "timestamp": self.timestamp,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "VoteRecord":
        return cls(
            proposal_id=int(data["proposalId"]),
            voter=normalize_address(data["voter"]),
            support=bool(data["support"]),
            weight=int(data["weight"]),
            timestamp=int(data["timestamp"]),
        )


@dataclass
class BallotTally:
    """Aggregated weight for a proposal."""
    proposal_id: int
    votes_for: int = 0
    votes_against: int = 0

    @property
    def total_votes(self) -> int:
        return self.votes_for + self.votes_against

    def to_dict(self) -> Dict[str, Any]:
        return {
            "proposalId": self.proposal_id,
            "votesFor": self.votes_for,
            "votesAgainst": self.votes_against,
            "totalVotes": self.total_votes,
        }


class BallotBox:
    """
    Records votes against deposited balances.

    Args:
        proposals:       Store used to resolve proposal ids
        get_balance_fn:  Callable(address) → int  (current treasury deposit)
    """

    def __init__(self, proposals: ProposalStore, get_balance_fn: Callable[[str], int]):
        self._proposals = proposals
        self._get_balance = get_balance_fn

        self._tallies: Dict[int, BallotTally] = {}
        self._votes: Dict[int, List[VoteRecord]] = {}
        self._voters: Dict[int, Set[str]] = {}  # proposal_id → {voter_addresses}
        self._last_voted: Dict[str, int] = {}   # voter → latest proposal_id voted on

    def open_tally(self, proposal_id: int) -> BallotTally:
        tally = self._tallies.get(proposal_id)
        if tally is None:
            tally = self._tallies[proposal_id] = BallotTally(proposal_id=proposal_id)
        return tally

    # ── Cast vote ─────────────────────────────────────────────────────

    def cast_vote(
        self,
        voter: str,
        proposal_id: int,
        support: bool,
        now: int,
        debating_period_duration: int,
    ) -> VoteRecord:
        """
        Cast the voter's whole current deposit for or against a proposal.

        Checks, in order: the voter has a deposit, the proposal exists, is not
        finished and its window is still open, the voter has not voted on it yet.
        """
        voter = normalize_address(voter)

        weight = self._get_balance(voter)
        if weight == 0:
            raise NoTokensError()

        proposal = self._proposals.get(proposal_id)
        if (
            proposal is None
            or proposal.finished
            or not proposal.is_open(now, debating_period_duration)
        ):
            raise ProposalNotActiveError()

        voters = self._voters.setdefault(proposal_id, set())
        if voter in voters:
            raise DuplicateVoteError()

        record = VoteRecord(
            proposal_id=proposal_id,
            voter=voter,
            support=bool(support),
            weight=weight,
            timestamp=now,
        )
        tally = self.open_tally(proposal_id)
        if record.support:
            tally.votes_for += weight
        else:
            tally.votes_against += weight
        voters.add(voter)
        self._votes.setdefault(proposal_id, []).append(record)

        # Lock pointer only moves forward to later proposals
        if proposal_id > self._last_voted.get(voter, 0):
            self._last_voted[voter] = proposal_id

        logger.info(
            f"Vote: {voter} → {'FOR' if record.support else 'AGAINST'} "
            f"on proposal #{proposal_id} (weight={weight})"
        )
        return record

    # ── Queries ───────────────────────────────────────────────────────

    def get_tally(self, proposal_id: int) -> Optional[BallotTally]:
        tally = self._tallies.get(proposal_id)
        if tally is None:
            return None
        return BallotTally(tally.proposal_id, tally.votes_for, tally.votes_against)

    def has_voted(self, proposal_id: int, voter: str) -> bool:
        return normalize_address(voter) in self._voters.get(proposal_id, set())

    def get_votes(self, proposal_id: int) -> List[VoteRecord]:
        return list(self._votes.get(proposal_id, []))

    def voter_count(self, proposal_id: int) -> int:
        return len(self._voters.get(proposal_id, set()))

    def last_voted(self, voter: str) -> Optional[int]:
        return self._last_voted.get(normalize_address(voter))

    def locked_until(self, voter: str, debating_period_duration: int) -> Optional[int]:
        """
        End of the debating window of the voter's latest vote, or None.

        Computed against the live duration, so a parameter change moves the
        unlock time of every pending lock.
        """
        proposal_id = self.last_voted(voter)
        if proposal_id is None:
            return None
        proposal = self._proposals.get(proposal_id)
        if proposal is None:
            return None
        return proposal.voting_end(debating_period_duration)

    def is_withdraw_locked(self, voter: str, now: int, debating_period_duration: int) -> bool:
        until = self.locked_until(voter, debating_period_duration)
        return until is not None and now < until

    # ── Serialization ─────────────────────────────────────────────────

    def to_dict(self) -> Dict[str, Any]:
        return {
            "tallies": [t.to_dict() for _, t in sorted(self._tallies.items())],
            "votes": [
                r.to_dict()
                for pid in sorted(self._votes)
                for r in self._votes[pid]
            ],
            "lastVoted": dict(self._last_voted),
        }

    def load(self, data: Dict[str, Any]):
        """Restore tallies, ballots and lock pointers produced by ``to_dict``."""
        self._tallies = {}
        for item in data.get("tallies", []):
            pid = int(item["proposalId"])
            self._tallies[pid] = BallotTally(
                proposal_id=pid,
                votes_for=int(item.get("votesFor", 0)),
                votes_against=int(item.get("votesAgainst", 0)),
            )
        self._votes = {}
        self._voters = {}
        for item in data.get("votes", []):
            record = VoteRecord.from_dict(item)
            self._votes.setdefault(record.proposal_id, []).append(record)
            self._voters.setdefault(record.proposal_id, set()).add(record.voter)
        self._last_voted = {
            normalize_address(a): int(pid) for a, pid in data.get("lastVoted", {}).items()
        }

    def __repr__(self) -> str:
        return f"<BallotBox proposals={len(self._tallies)}>"
