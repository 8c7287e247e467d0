"""
TokenDAO Governed Token

Provides:
  - Token          : ERC-20 fungible asset with Ownable mint and call-data dispatch
  - TransferEvent / ApprovalEvent / OwnershipTransferredEvent
"""

from .erc20 import (
    ApprovalEvent,
    InsufficientAllowanceError,
    InsufficientBalanceError,
    NotTokenOwnerError,
    OwnershipTransferredEvent,
    Token,
    TokenError,
    TransferEvent,
    UnknownFunctionError,
)

__all__ = [
    "Token",
    "TransferEvent",
    "ApprovalEvent",
    "OwnershipTransferredEvent",
    "TokenError",
    "InsufficientBalanceError",
    "InsufficientAllowanceError",
    "NotTokenOwnerError",
    "UnknownFunctionError",
]
