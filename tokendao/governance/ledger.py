"""
Treasury Deposit Ledger

Tracks how much of the governed token each depositor holds in the DAO
treasury. Deposited balances are the source of voting weight.
"""

from dataclasses import dataclass
from typing import Any, Dict, Optional

from ..abi import normalize_address
from ..constants import UINT256_MAX
from ..logger import get_logger
from ..tokens.erc20 import Token
from .errors import (
    InsufficientBalanceError,
    InvalidAmountError,
    NoDepositError,
    WithdrawLockedError,
    ZeroAmountError,
)

logger = get_logger(__name__)


def require_uint(value: int, name: str = "Amount") -> int:
    """Reject anything that is not an integer in ``[0, 2**256)``."""
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidAmountError(f"{name} must be an integer, got {type(value).__name__}")
    if value < 0 or value > UINT256_MAX:
        raise InvalidAmountError(f"{name} must be an unsigned 256-bit integer")
    return value


@dataclass(frozen=True)
class DepositEvent:
    depositor: str
    amount: int
    balance: int
    timestamp: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "event": "Deposit",
            "depositor": self.depositor,
            "amount": self.amount,
            "balance": self.balance,
            "timestamp": self.timestamp,
        }


@dataclass(frozen=True)
class WithdrawEvent:
    depositor: str
    amount: int
    balance: int
    timestamp: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "event": "Withdraw",
            "depositor": self.depositor,
            "amount": self.amount,
            "balance": self.balance,
            "timestamp": self.timestamp,
        }


class DepositLedger:
    """
    Per-depositor treasury balances backed by real token custody.

    The treasury address is the spender of deposits and the sender of
    withdrawals on the token, so every credited unit is actually held.
    """

    def __init__(self, token: Token, treasury: str):
        self._token = token
        self._treasury = normalize_address(treasury)
        self._balances: Dict[str, int] = {}

    @property
    def treasury(self) -> str:
        return self._treasury

    # ── Views ─────────────────────────────────────────────────────────

    def balance_of(self, depositor: str) -> int:
        return self._balances.get(normalize_address(depositor), 0)

    @property
    def total_deposited(self) -> int:
        return sum(self._balances.values())

    def depositors(self) -> Dict[str, int]:
        """Addresses with a non-zero deposit and their balances."""
        return {addr: bal for addr, bal in self._balances.items() if bal > 0}

    # ── Mutations ─────────────────────────────────────────────────────

    def deposit(self, depositor: str, amount: int, now: int) -> DepositEvent:
        """
        Pull *amount* from *depositor* into the treasury and credit it.

        The depositor must have approved the treasury on the token first.
        Token errors propagate unchanged and leave the ledger untouched.
        """
        depositor = normalize_address(depositor)
        require_uint(amount)

        self._token.transfer_from(self._treasury, depositor, self._treasury, amount)
        balance = self._balances.get(depositor, 0) + amount
        self._balances[depositor] = balance

        logger.info(f"Deposit: {depositor} amount={amount} (balance {balance})")
        return DepositEvent(depositor=depositor, amount=amount, balance=balance, timestamp=now)

    def withdraw(
        self,
        depositor: str,
        amount: int,
        now: int,
        locked_until: Optional[int] = None,
    ) -> WithdrawEvent:
        """
        Return *amount* of *depositor*'s balance from the treasury.

        Args:
            depositor: Withdrawing account
            amount: Amount to withdraw
            now: Current timestamp
            locked_until: End of the debating window of the depositor's latest
                          vote, or None when the depositor never voted
        """
        depositor = normalize_address(depositor)
        require_uint(amount)

        if amount == 0:
            raise ZeroAmountError()
        balance = self._balances.get(depositor, 0)
        if balance == 0:
            raise NoDepositError()
        if amount > balance:
            raise InsufficientBalanceError()
        if locked_until is not None and now < locked_until:
            raise WithdrawLockedError()

        self._token.transfer(self._treasury, depositor, amount)
        self._balances[depositor] = balance - amount

        logger.info(f"Withdraw: {depositor} amount={amount} (balance {balance - amount})")
        return WithdrawEvent(
            depositor=depositor,
            amount=amount,
            balance=balance - amount,
            timestamp=now,
        )

    # ── Serialization ─────────────────────────────────────────────────

    def to_dict(self) -> Dict[str, Any]:
        return {"treasury": self._treasury, "balances": dict(self._balances)}

    def load_balances(self, balances: Dict[str, int]):
        self._balances = {normalize_address(a): int(b) for a, b in balances.items()}

    def __repr__(self) -> str:
        return f"<DepositLedger depositors={len(self._balances)} total={self.total_deposited}>"
