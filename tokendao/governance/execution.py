"""
Proposal Execution

Implements:
  - Quorum / majority evaluation (ties lose)
  - Failure-tolerant invocation of a passed proposal's call data
  - One FinishProposal outcome per proposal
"""

from dataclasses import dataclass
from typing import Any, Dict, Optional, Protocol, runtime_checkable

from ..abi import normalize_address
from ..logger import get_logger
from .errors import DebatingPeriodNotOverError, ProposalAlreadyFinishedError
from .proposals import Proposal
from .voting import BallotTally

logger = get_logger(__name__)


@runtime_checkable
class ActionTarget(Protocol):
    """Anything a passed proposal can send its call data to."""

    def invoke(self, caller: str, call_data: bytes) -> Any:
        ...


@dataclass(frozen=True)
class FinishProposalEvent:
    """Outcome of finish_proposal, recorded exactly once per proposal."""
    proposal_id: int
    votes_for: int
    votes_against: int
    total_votes: int
    accepted: bool
    timestamp: int
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "event": "FinishProposal",
            "proposalId": self.proposal_id,
            "votesFor": self.votes_for,
            "votesAgainst": self.votes_against,
            "totalVotes": self.total_votes,
            "accepted": self.accepted,
            "timestamp": self.timestamp,
            "error": self.error,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "FinishProposalEvent":
        return cls(
            proposal_id=int(data["proposalId"]),
            votes_for=int(data["votesFor"]),
            votes_against=int(data["votesAgainst"]),
            total_votes=int(data["totalVotes"]),
            accepted=bool(data["accepted"]),
            timestamp=int(data["timestamp"]),
            error=data.get("error"),
        )


class ProposalExecutor:
    """
    Finalizes proposals and runs the actions of the ones that pass.

    Args:
        executor_address: Address the call data is sent from (the DAO)
    """

    def __init__(self, executor_address: str):
        self._executor_address = normalize_address(executor_address)
        self._targets: Dict[str, ActionTarget] = {}
        self._outcomes: Dict[int, FinishProposalEvent] = {}

    # ── Targets ───────────────────────────────────────────────────────

    def register_target(self, address: str, target: ActionTarget):
        if not isinstance(target, ActionTarget):
            raise TypeError(f"{target!r} does not implement invoke(caller, call_data)")
        address = normalize_address(address)
        self._targets[address] = target
        logger.debug(f"Action target registered at {address}")

    # ── Evaluation ────────────────────────────────────────────────────

    @staticmethod
    def is_accepted(votes_for: int, votes_against: int, minimum_quorum: int) -> bool:
        """Quorum met AND strictly more weight for than against."""
        return votes_for + votes_against >= minimum_quorum and votes_for > votes_against

    def _invoke(self, proposal: Proposal) -> Optional[str]:
        """Run the proposal's action. Returns the failure reason, or None on success."""
        target = self._targets.get(proposal.recipient)
        if target is None:
            return f"No action target registered at {proposal.recipient}"
        try:
            target.invoke(self._executor_address, proposal.call_data)
        except Exception as e:
            # A failing action downgrades the outcome; finalization still completes
            return f"{type(e).__name__}: {e}"
        return None

    # ── Finalization ──────────────────────────────────────────────────

    def finish(
        self,
        proposal: Proposal,
        tally: BallotTally,
        now: int,
        debating_period_duration: int,
        minimum_quorum: int,
    ) -> FinishProposalEvent:
        """
        Finalize *proposal* once its debating window has elapsed.

        The proposal is marked finished whether or not it passed, and whether
        or not its action succeeded.
        """
        if now < proposal.voting_end(debating_period_duration):
            raise DebatingPeriodNotOverError()
        if proposal.finished:
            raise ProposalAlreadyFinishedError()

        accepted = self.is_accepted(tally.votes_for, tally.votes_against, minimum_quorum)
        error = None
        if accepted:
            error = self._invoke(proposal)
            if error is not None:
                accepted = False
                logger.warning(f"Proposal #{proposal.id}: action failed ({error})")

        proposal.mark_finished()

        outcome = FinishProposalEvent(
            proposal_id=proposal.id,
            votes_for=tally.votes_for,
            votes_against=tally.votes_against,
            total_votes=tally.total_votes,
            accepted=accepted,
            timestamp=now,
            error=error,
        )
        self._outcomes[proposal.id] = outcome

        logger.info(
            f"Proposal #{proposal.id}: {'ACCEPTED' if accepted else 'REJECTED'} "
            f"(for={tally.votes_for} against={tally.votes_against} "
            f"total={tally.total_votes}, quorum {minimum_quorum})"
        )
        return outcome

    # ── Queries ───────────────────────────────────────────────────────

    def outcome(self, proposal_id: int) -> Optional[FinishProposalEvent]:
        return self._outcomes.get(proposal_id)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "outcomes": [o.to_dict() for _, o in sorted(self._outcomes.items())],
        }

    def load(self, data: Dict[str, Any]):
        self._outcomes = {}
        for item in data.get("outcomes", []):
            outcome = FinishProposalEvent.from_dict(item)
            self._outcomes[outcome.proposal_id] = outcome

    def __repr__(self) -> str:
        return (
            f"<ProposalExecutor targets={len(self._targets)} "
            f"finished={len(self._outcomes)}>"
        )
