"""
TokenDAO Governance Engine

Provides:
  - AccessControl                                  (access.py)
  - DepositLedger / DepositEvent / WithdrawEvent   (ledger.py)
  - Proposal / ProposalStatus / ProposalStore      (proposals.py)
  - BallotBox / BallotTally / VoteRecord           (voting.py)
  - ProposalExecutor / FinishProposalEvent         (execution.py)
  - DAO                                            (dao.py)
"""

from .errors import (
    AccessDeniedError,
    DebatingPeriodNotOverError,
    DuplicateVoteError,
    FundsLockedError,
    GovernanceError,
    InsufficientBalanceError,
    InvalidAmountError,
    NoDepositError,
    NoTokensError,
    NotChairpersonError,
    NotOwnerError,
    ProposalAlreadyFinishedError,
    ProposalNotActiveError,
    ProposalNotFoundError,
    WithdrawLockedError,
    ZeroAmountError,
)
from .access import AccessControl
from .ledger import DepositEvent, DepositLedger, WithdrawEvent
from .proposals import Proposal, ProposalStatus, ProposalStore
from .voting import BallotBox, BallotTally, VoteRecord
from .execution import ActionTarget, FinishProposalEvent, ProposalExecutor
from .dao import DAO, AddProposalEvent, ParameterChangedEvent

__all__ = [
    # Errors
    "GovernanceError",
    "AccessDeniedError",
    "NotOwnerError",
    "NotChairpersonError",
    "InvalidAmountError",
    "ZeroAmountError",
    "NoTokensError",
    "NoDepositError",
    "InsufficientBalanceError",
    "FundsLockedError",
    "WithdrawLockedError",
    "ProposalNotFoundError",
    "ProposalNotActiveError",
    "DuplicateVoteError",
    "DebatingPeriodNotOverError",
    "ProposalAlreadyFinishedError",
    # Components
    "AccessControl",
    "DepositLedger",
    "DepositEvent",
    "WithdrawEvent",
    "Proposal",
    "ProposalStatus",
    "ProposalStore",
    "BallotBox",
    "BallotTally",
    "VoteRecord",
    "ActionTarget",
    "FinishProposalEvent",
    "ProposalExecutor",
    # Engine
    "DAO",
    "AddProposalEvent",
    "ParameterChangedEvent",
]
