"""
Governance error taxonomy.

Every rejection carries the human-readable reason a caller sees. Categories
are grouped under one base class each so callers can catch by kind
(``AccessDeniedError``) or by exact cause (``NotOwnerError``).
"""

from ..exceptions import TokenDAOException


class GovernanceError(TokenDAOException):
    """Base governance exception."""


# ── Access ───────────────────────────────────────────────────────────

class AccessDeniedError(GovernanceError):
    """Caller does not hold the role the operation requires."""


class NotOwnerError(AccessDeniedError):
    def __init__(self, message: str = "Caller is not the owner"):
        super().__init__(message)


class NotChairpersonError(AccessDeniedError):
    def __init__(self, message: str = "Caller is not the chairperson"):
        super().__init__(message)


# ── Amounts ──────────────────────────────────────────────────────────

class InvalidAmountError(GovernanceError):
    """Amount is malformed, zero where forbidden, or not covered by a balance."""


class ZeroAmountError(InvalidAmountError):
    def __init__(self, message: str = "Amount should be greater than 0"):
        super().__init__(message)


class NoTokensError(InvalidAmountError):
    """Caller has nothing deposited in the treasury."""

    def __init__(self, message: str = "You don't have tokens"):
        super().__init__(message)


class NoDepositError(NoTokensError):
    """Withdrawal attempted with an empty treasury balance."""


class InsufficientBalanceError(InvalidAmountError):
    def __init__(self, message: str = "Amount greater than your balance"):
        super().__init__(message)


# ── Locks ────────────────────────────────────────────────────────────

class FundsLockedError(GovernanceError):
    """Funds are held by a pending vote."""


class WithdrawLockedError(FundsLockedError):
    def __init__(self, message: str = "You can withdraw after the latest proposal"):
        super().__init__(message)


# ── Proposals ────────────────────────────────────────────────────────

class ProposalNotFoundError(GovernanceError):
    def __init__(self, message: str = "Proposal does not exist"):
        super().__init__(message)


class ProposalNotActiveError(GovernanceError):
    """Proposal does not exist or its debating window has closed."""

    def __init__(self, message: str = "Proposal is not active"):
        super().__init__(message)


class DuplicateVoteError(GovernanceError):
    def __init__(self, message: str = "You've already done the voice"):
        super().__init__(message)


class DebatingPeriodNotOverError(GovernanceError):
    def __init__(self, message: str = "Debating period is not over"):
        super().__init__(message)


class ProposalAlreadyFinishedError(GovernanceError):
    def __init__(self, message: str = "Debate is over"):
        super().__init__(message)
