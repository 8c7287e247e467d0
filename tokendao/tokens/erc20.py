"""
Governed Token — ERC-20 fungible asset ledger

Implements the asset the DAO treasury holds and the default target of
proposal actions:
  - ERC-20 interface (transfer, approve, transferFrom, balanceOf, totalSupply)
  - Ownable mint (the DAO becomes owner so passed proposals can mint)
  - ``invoke`` dispatch of ABI call data, with the caller acting as msg.sender
"""

import time
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Tuple

from eth_abi.exceptions import DecodingError

from ..abi import (
    compute_function_selector,
    decode_arguments,
    decode_function_call,
    generate_contract_address,
    normalize_address,
    parse_signature,
)
from ..constants import (
    TOKEN_DEFAULT_DECIMALS,
    TOKEN_DEPLOY_NONCE,
    UINT256_MAX,
    ZERO_ADDRESS,
)
from ..exceptions import TokenDAOException
from ..logger import get_logger

logger = get_logger(__name__)


# ══════════════════════════════════════════════════════════════════════
#  EXCEPTIONS
# ══════════════════════════════════════════════════════════════════════

class TokenError(TokenDAOException):
    """Base exception for token operations."""


class InsufficientBalanceError(TokenError):
    """Raised when sender balance is too low."""


class InsufficientAllowanceError(TokenError):
    """Raised when spender allowance is too low."""


class NotTokenOwnerError(TokenError):
    """Raised when a restricted call does not come from the token owner."""


class UnknownFunctionError(TokenError):
    """Raised when call data targets a function the token does not expose."""


# ══════════════════════════════════════════════════════════════════════
#  EVENTS
# ══════════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class TransferEvent:
    """Emitted on every transfer, mint included (sender is the zero address)."""
    token_symbol: str
    sender: str
    recipient: str
    amount: int
    timestamp: float = field(default_factory=time.time)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "event": "Transfer",
            "token": self.token_symbol,
            "from": self.sender,
            "to": self.recipient,
            "amount": self.amount,
            "timestamp": self.timestamp,
        }


@dataclass(frozen=True)
class ApprovalEvent:
    """Emitted on every successful approve."""
    token_symbol: str
    owner: str
    spender: str
    amount: int
    timestamp: float = field(default_factory=time.time)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "event": "Approval",
            "token": self.token_symbol,
            "owner": self.owner,
            "spender": self.spender,
            "amount": self.amount,
            "timestamp": self.timestamp,
        }


@dataclass(frozen=True)
class OwnershipTransferredEvent:
    token_symbol: str
    previous_owner: str
    new_owner: str
    timestamp: float = field(default_factory=time.time)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "event": "OwnershipTransferred",
            "token": self.token_symbol,
            "previousOwner": self.previous_owner,
            "newOwner": self.new_owner,
            "timestamp": self.timestamp,
        }


def _require_amount(amount: int) -> int:
    if isinstance(amount, bool) or not isinstance(amount, int):
        raise TokenError(f"Amount must be an integer, got {type(amount).__name__}")
    if amount < 0:
        raise TokenError("Amount cannot be negative")
    if amount > UINT256_MAX:
        raise TokenError("Amount exceeds uint256")
    return amount


# ══════════════════════════════════════════════════════════════════════
#  TOKEN
# ══════════════════════════════════════════════════════════════════════

class Token:
    """
    ERC-20 governed token.

    Mirrors ERC-20 semantics:
        - balance_of(address) → int
        - transfer(sender, recipient, amount)
        - approve(owner, spender, amount)
        - transfer_from(spender, sender, recipient, amount)
        - total_supply → int

    Plus Ownable minting and ``invoke`` for ABI-encoded calls. All amounts
    are integers in the token's smallest unit.
    """

    def __init__(
        self,
        name: str,
        symbol: str,
        decimals: int = TOKEN_DEFAULT_DECIMALS,
        total_supply: int = 0,
        deployer: str = ZERO_ADDRESS,
        *,
        address: Optional[str] = None,
    ):
        """
        Args:
            name: Human-readable token name
            symbol: Short ticker
            decimals: Fractional digits (display only)
            total_supply: Initial minted supply, credited to the deployer
            deployer: Deploying account, becomes the owner
            address: Token address (derived from the deployer if omitted)
        """
        if not name:
            raise TokenError("Token name cannot be empty")
        if not symbol:
            raise TokenError("Token symbol cannot be empty")
        if decimals < 0 or decimals > 18:
            raise TokenError(f"Decimals must be 0-18, got {decimals}")
        _require_amount(total_supply)

        self.name = name
        self.symbol = symbol
        self.decimals = decimals
        self.deployer = normalize_address(deployer)
        self.address = normalize_address(
            address or generate_contract_address(self.deployer, TOKEN_DEPLOY_NONCE)
        )
        self._owner = self.deployer
        self._total_supply = total_supply

        self._balances: Dict[str, int] = {}
        self._allowances: Dict[Tuple[str, str], int] = {}  # (owner, spender)
        self._events: List[Any] = []

        if total_supply > 0:
            self._balances[self.deployer] = total_supply

        logger.debug(f"Token {symbol} ({name}) at {self.address}, supply={total_supply}")

    # ── Read-only views ───────────────────────────────────────────────

    @property
    def total_supply(self) -> int:
        return self._total_supply

    @property
    def owner(self) -> str:
        return self._owner

    def balance_of(self, address: str) -> int:
        return self._balances.get(normalize_address(address), 0)

    def allowance(self, owner: str, spender: str) -> int:
        return self._allowances.get((normalize_address(owner), normalize_address(spender)), 0)

    @property
    def events(self) -> List[Any]:
        return list(self._events)

    def holders(self) -> Dict[str, int]:
        return {a: b for a, b in self._balances.items() if b > 0}

    # ── Internals ─────────────────────────────────────────────────────

    def _move(self, sender: str, recipient: str, amount: int) -> TransferEvent:
        bal = self._balances.get(sender, 0)
        if bal < amount:
            raise InsufficientBalanceError(
                f"{sender} balance {bal} < transfer amount {amount}"
            )
        self._balances[sender] = bal - amount
        self._balances[recipient] = self._balances.get(recipient, 0) + amount

        event = TransferEvent(
            token_symbol=self.symbol,
            sender=sender,
            recipient=recipient,
            amount=amount,
        )
        self._events.append(event)
        logger.debug(f"Transfer: {sender} → {recipient} amount={amount} {self.symbol}")
        return event

    # ── Core ERC-20 operations ────────────────────────────────────────

    def transfer(self, sender: str, recipient: str, amount: int) -> TransferEvent:
        """Move *amount* from *sender* to *recipient*."""
        sender = normalize_address(sender)
        recipient = normalize_address(recipient)
        _require_amount(amount)
        if recipient == ZERO_ADDRESS:
            raise TokenError("Transfer to the zero address")
        return self._move(sender, recipient, amount)

    def approve(self, owner: str, spender: str, amount: int) -> ApprovalEvent:
        """Set *spender*'s allowance over *owner*'s tokens."""
        owner = normalize_address(owner)
        spender = normalize_address(spender)
        _require_amount(amount)
        if spender == ZERO_ADDRESS:
            raise TokenError("Approve to the zero address")

        self._allowances[(owner, spender)] = amount

        event = ApprovalEvent(
            token_symbol=self.symbol,
            owner=owner,
            spender=spender,
            amount=amount,
        )
        self._events.append(event)
        logger.debug(f"Approve: {owner} → {spender} amount={amount} {self.symbol}")
        return event

    def transfer_from(
        self,
        spender: str,
        sender: str,
        recipient: str,
        amount: int,
    ) -> TransferEvent:
        """Transfer on behalf of *sender* using *spender*'s allowance."""
        spender = normalize_address(spender)
        sender = normalize_address(sender)
        recipient = normalize_address(recipient)
        _require_amount(amount)
        if recipient == ZERO_ADDRESS:
            raise TokenError("Transfer to the zero address")

        allow = self._allowances.get((sender, spender), 0)
        if allow < amount:
            raise InsufficientAllowanceError(
                f"Allowance {allow} < transfer amount {amount}"
            )

        event = self._move(sender, recipient, amount)
        self._allowances[(sender, spender)] = allow - amount
        return event

    # ── Ownable ───────────────────────────────────────────────────────

    def _require_owner(self, caller: str):
        if normalize_address(caller) != self._owner:
            raise NotTokenOwnerError("Ownable: caller is not the owner")

    def mint(self, caller: str, recipient: str, amount: int) -> TransferEvent:
        """Create *amount* new tokens for *recipient* (owner only)."""
        self._require_owner(caller)
        recipient = normalize_address(recipient)
        _require_amount(amount)
        if recipient == ZERO_ADDRESS:
            raise TokenError("Mint to the zero address")
        if self._total_supply + amount > UINT256_MAX:
            raise TokenError(f"Minting {amount} would overflow total supply")

        self._total_supply += amount
        self._balances[recipient] = self._balances.get(recipient, 0) + amount

        event = TransferEvent(
            token_symbol=self.symbol,
            sender=ZERO_ADDRESS,
            recipient=recipient,
            amount=amount,
        )
        self._events.append(event)
        logger.info(f"Mint: amount={amount} {self.symbol} → {recipient}")
        return event

    def transfer_ownership(self, caller: str, new_owner: str) -> OwnershipTransferredEvent:
        self._require_owner(caller)
        new_owner = normalize_address(new_owner)
        if new_owner == ZERO_ADDRESS:
            raise TokenError("Ownable: new owner is the zero address")

        previous, self._owner = self._owner, new_owner
        event = OwnershipTransferredEvent(
            token_symbol=self.symbol,
            previous_owner=previous,
            new_owner=new_owner,
        )
        self._events.append(event)
        logger.info(f"Token {self.symbol} ownership: {previous} → {new_owner}")
        return event

    # ── Call-data dispatch ────────────────────────────────────────────

    def _call_table(self) -> Dict[bytes, Tuple[str, Callable[..., Any]]]:
        return {
            compute_function_selector(sig): (sig, fn)
            for sig, fn in (
                ("transfer(address,uint256)",
                 lambda caller, to, amount: self.transfer(caller, to, amount)),
                ("approve(address,uint256)",
                 lambda caller, spender, amount: self.approve(caller, spender, amount)),
                ("transferFrom(address,address,uint256)",
                 lambda caller, src, dst, amount: self.transfer_from(caller, src, dst, amount)),
                ("mint(address,uint256)",
                 lambda caller, to, amount: self.mint(caller, to, amount)),
                ("transferOwnership(address)",
                 lambda caller, new_owner: self.transfer_ownership(caller, new_owner)),
            )
        }

    def invoke(self, caller: str, call_data: bytes) -> Any:
        """
        Execute ABI-encoded *call_data* with *caller* as msg.sender.

        Raises:
            UnknownFunctionError: selector not exposed by the token
            TokenError: arguments could not be decoded, or the call failed
        """
        selector, encoded_args = decode_function_call(bytes(call_data))
        entry = self._call_table().get(selector)
        if entry is None:
            raise UnknownFunctionError(
                f"Token {self.symbol} has no function with selector 0x{selector.hex()}"
            )
        signature, fn = entry
        _, arg_types = parse_signature(signature)
        try:
            args = decode_arguments(arg_types, encoded_args)
        except DecodingError as e:
            raise TokenError(f"Malformed arguments for {signature}: {e}") from e

        logger.debug(f"Invoke: {caller} → {self.symbol}.{signature}")
        return fn(caller, *args)

    # ── Serialization ─────────────────────────────────────────────────

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "symbol": self.symbol,
            "decimals": self.decimals,
            "address": self.address,
            "deployer": self.deployer,
            "owner": self._owner,
            "totalSupply": self._total_supply,
            "balances": dict(self._balances),
            "allowances": [
                {"owner": o, "spender": s, "amount": a}
                for (o, s), a in self._allowances.items()
            ],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Token":
        token = cls(
            name=data["name"],
            symbol=data["symbol"],
            decimals=data.get("decimals", TOKEN_DEFAULT_DECIMALS),
            deployer=data["deployer"],
            address=data["address"],
        )
        token._owner = normalize_address(data.get("owner", token.deployer))
        token._total_supply = int(data.get("totalSupply", 0))
        token._balances = {
            normalize_address(a): int(b) for a, b in data.get("balances", {}).items()
        }
        token._allowances = {
            (normalize_address(e["owner"]), normalize_address(e["spender"])): int(e["amount"])
            for e in data.get("allowances", [])
        }
        return token

    def __repr__(self) -> str:
        return f"<Token {self.symbol} supply={self._total_supply}>"
