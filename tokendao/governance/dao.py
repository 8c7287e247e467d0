"""
DAO Engine

Wires the governance components behind the public operations:

    add_proposal      chairperson only
    deposit           anyone (after approving the DAO on the token)
    withdraw          depositors, unless their latest vote is still open
    vote              depositors, once per proposal while it is open
    finish_proposal   anyone, once the debating window has elapsed
    set_minimum_quorum / set_debating_period_duration   owner only

Every operation is all-or-nothing: validation happens before any state
changes. The only absorbed failure is a passed proposal's action, which
turns the outcome into a rejection instead of failing finish_proposal.
"""

import time
from dataclasses import dataclass, replace
from typing import Any, Callable, Dict, List, Optional

from ..abi import generate_contract_address, normalize_address
from ..constants import DAO_DEPLOY_NONCE
from ..logger import get_logger
from ..tokens.erc20 import Token
from .access import AccessControl
from .execution import ActionTarget, FinishProposalEvent, ProposalExecutor
from .ledger import DepositEvent, DepositLedger, WithdrawEvent, require_uint
from .proposals import Proposal, ProposalStatus, ProposalStore
from .voting import BallotBox, BallotTally, VoteRecord

logger = get_logger(__name__)


@dataclass(frozen=True)
class AddProposalEvent:
    proposal_id: int
    recipient: str
    description: str
    created_at: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "event": "AddProposal",
            "proposalId": self.proposal_id,
            "recipient": self.recipient,
            "description": self.description,
            "createdAt": self.created_at,
        }


@dataclass(frozen=True)
class ParameterChangedEvent:
    name: str
    old_value: int
    new_value: int
    timestamp: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "event": "ParameterChanged",
            "name": self.name,
            "oldValue": self.old_value,
            "newValue": self.new_value,
            "timestamp": self.timestamp,
        }


class DAO:
    """
    Token-weighted governance engine.

    Parameters are read live: changing the debating period or the quorum
    affects proposals already in flight.
    """

    def __init__(
        self,
        owner: str,
        chairperson: str,
        token: Token,
        minimum_quorum: int,
        debating_period_duration: int,
        *,
        address: Optional[str] = None,
        time_fn: Callable[[], float] = time.time,
    ):
        """
        Args:
            owner: Account allowed to change engine parameters
            chairperson: Account allowed to add proposals
            token: Governed token held by the treasury
            minimum_quorum: Minimum total vote weight for a proposal to pass
            debating_period_duration: Voting window length in seconds
            address: DAO (treasury) address, derived from the owner if omitted
            time_fn: Clock returning unix seconds
        """
        self.access = AccessControl(owner=owner, chairperson=chairperson)
        self.token = token
        self.address = normalize_address(
            address or generate_contract_address(self.access.owner, DAO_DEPLOY_NONCE)
        )
        self._minimum_quorum = require_uint(minimum_quorum, "Minimum quorum")
        self._debating_period_duration = require_uint(
            debating_period_duration, "Debating period duration"
        )
        self._time_fn = time_fn

        self.ledger = DepositLedger(token, self.address)
        self.proposals = ProposalStore()
        self.ballots = BallotBox(self.proposals, get_balance_fn=self.ledger.balance_of)
        self.executor = ProposalExecutor(self.address)
        self.executor.register_target(token.address, token)

        self._events: List[Any] = []

        logger.debug(
            f"DAO at {self.address}: token={token.symbol} "
            f"quorum={self._minimum_quorum} period={self._debating_period_duration}s"
        )

    def _now(self) -> int:
        return int(self._time_fn())

    def _emit(self, event: Any) -> Any:
        self._events.append(event)
        return event

    # ── Parameters ────────────────────────────────────────────────────

    @property
    def owner(self) -> str:
        return self.access.owner

    @property
    def chairperson(self) -> str:
        return self.access.chairperson

    @property
    def minimum_quorum(self) -> int:
        return self._minimum_quorum

    @property
    def debating_period_duration(self) -> int:
        return self._debating_period_duration

    def set_minimum_quorum(self, caller: str, value: int) -> ParameterChangedEvent:
        self.access.require_owner(caller)
        require_uint(value, "Minimum quorum")
        old, self._minimum_quorum = self._minimum_quorum, value
        logger.info(f"Parameter 'minimum_quorum' changed: {old} → {value}")
        return self._emit(ParameterChangedEvent("minimumQuorum", old, value, self._now()))

    def set_debating_period_duration(self, caller: str, value: int) -> ParameterChangedEvent:
        self.access.require_owner(caller)
        require_uint(value, "Debating period duration")
        old, self._debating_period_duration = self._debating_period_duration, value
        logger.info(f"Parameter 'debating_period_duration' changed: {old} → {value}")
        return self._emit(
            ParameterChangedEvent("debatingPeriodDuration", old, value, self._now())
        )

    # ── Targets ───────────────────────────────────────────────────────

    def register_target(self, address: str, target: ActionTarget):
        """Make *target* reachable by proposals whose recipient is *address*."""
        self.executor.register_target(address, target)

    # ── Operations ────────────────────────────────────────────────────

    def add_proposal(
        self,
        caller: str,
        call_data: bytes,
        recipient: str,
        description: str,
    ) -> Proposal:
        self.access.require_chairperson(caller)
        now = self._now()
        proposal = self.proposals.add(call_data, recipient, description, created_at=now)
        self.ballots.open_tally(proposal.id)
        self._emit(AddProposalEvent(proposal.id, proposal.recipient, description, now))
        return replace(proposal)

    def deposit(self, caller: str, amount: int) -> DepositEvent:
        return self._emit(self.ledger.deposit(caller, amount, self._now()))

    def withdraw(self, caller: str, amount: int) -> WithdrawEvent:
        now = self._now()
        locked_until = self.ballots.locked_until(caller, self._debating_period_duration)
        return self._emit(self.ledger.withdraw(caller, amount, now, locked_until))

    def vote(self, caller: str, proposal_id: int, support: bool) -> VoteRecord:
        record = self.ballots.cast_vote(
            caller, proposal_id, support, self._now(), self._debating_period_duration
        )
        return self._emit(record)

    def finish_proposal(self, caller: str, proposal_id: int) -> FinishProposalEvent:
        """Finalize a proposal. Any caller may do this."""
        caller = normalize_address(caller)
        proposal = self.proposals.get_or_raise(proposal_id)
        tally = self.ballots.open_tally(proposal_id)
        outcome = self.executor.finish(
            proposal,
            tally,
            now=self._now(),
            debating_period_duration=self._debating_period_duration,
            minimum_quorum=self._minimum_quorum,
        )
        logger.debug(f"finish_proposal #{proposal_id} called by {caller}")
        return self._emit(outcome)

    # ── Queries ───────────────────────────────────────────────────────

    def balance_of(self, depositor: str) -> int:
        return self.ledger.balance_of(depositor)

    def get_proposal(self, proposal_id: int) -> Optional[Proposal]:
        proposal = self.proposals.get(proposal_id)
        return replace(proposal) if proposal is not None else None

    def get_tally(self, proposal_id: int) -> Optional[BallotTally]:
        return self.ballots.get_tally(proposal_id)

    def proposal_status(self, proposal_id: int) -> ProposalStatus:
        proposal = self.proposals.get_or_raise(proposal_id)
        return proposal.status(self._now(), self._debating_period_duration)

    def has_voted(self, proposal_id: int, voter: str) -> bool:
        return self.ballots.has_voted(proposal_id, voter)

    def locked_until(self, depositor: str) -> Optional[int]:
        """Unlock time of the depositor's funds, or None if no vote holds them."""
        until = self.ballots.locked_until(depositor, self._debating_period_duration)
        if until is None or self._now() >= until:
            return None
        return until

    def outcome(self, proposal_id: int) -> Optional[FinishProposalEvent]:
        return self.executor.outcome(proposal_id)

    @property
    def proposal_count(self) -> int:
        return self.proposals.count

    @property
    def events(self) -> List[Any]:
        return list(self._events)

    # ── Serialization ─────────────────────────────────────────────────

    def to_dict(self) -> Dict[str, Any]:
        return {
            "address": self.address,
            "token": self.token.address,
            "access": self.access.to_dict(),
            "minimumQuorum": self._minimum_quorum,
            "debatingPeriodDuration": self._debating_period_duration,
            "ledger": self.ledger.to_dict(),
            "proposals": self.proposals.to_dict(),
            "ballots": self.ballots.to_dict(),
            "executor": self.executor.to_dict(),
        }

    @classmethod
    def from_dict(
        cls,
        data: Dict[str, Any],
        token: Token,
        time_fn: Callable[[], float] = time.time,
    ) -> "DAO":
        """Rebuild a DAO from ``to_dict`` output. The event log starts empty."""
        access = AccessControl.from_dict(data["access"])
        dao = cls(
            owner=access.owner,
            chairperson=access.chairperson,
            token=token,
            minimum_quorum=int(data["minimumQuorum"]),
            debating_period_duration=int(data["debatingPeriodDuration"]),
            address=data["address"],
            time_fn=time_fn,
        )
        dao.ledger.load_balances(data.get("ledger", {}).get("balances", {}))
        dao.proposals = ProposalStore.from_dict(data.get("proposals", {}))
        dao.ballots = BallotBox(dao.proposals, get_balance_fn=dao.ledger.balance_of)
        dao.ballots.load(data.get("ballots", {}))
        dao.executor.load(data.get("executor", {}))
        return dao

    def __repr__(self) -> str:
        return (
            f"<DAO {self.address} proposals={self.proposals.count} "
            f"deposited={self.ledger.total_deposited}>"
        )
