"""
Call Data & Address Helpers

Ethereum-compatible ABI call encoding and address handling. A proposal's
encoded action is ordinary call data: a 4-byte function selector followed by
ABI-encoded arguments.
"""

from typing import Any, List, Sequence, Tuple

import rlp
from eth_abi import decode, encode
from eth_typing import ChecksumAddress
from eth_utils import keccak, to_checksum_address

from .exceptions import InvalidAddressError


def normalize_address(address: str) -> ChecksumAddress:
    """
    Return the EIP-55 checksum form of a 20-byte hex address.

    Raises:
        InvalidAddressError: if *address* is not a 20-byte hex string
    """
    if not isinstance(address, str):
        raise InvalidAddressError(f"Address must be a string, got {type(address).__name__}")
    try:
        return to_checksum_address(address)
    except ValueError as e:
        raise InvalidAddressError(f"Invalid address {address!r}: {e}") from e


def generate_contract_address(sender: str, nonce: int) -> ChecksumAddress:
    """
    Generate contract address using CREATE opcode logic.

    Address = keccak256(rlp([sender, nonce]))[-20:]

    Args:
        sender: Deployer address (0x-prefixed hex)
        nonce: Deployer nonce

    Returns:
        Contract address (checksum format)
    """
    sender_bytes = bytes.fromhex(normalize_address(sender)[2:])
    hash_bytes = keccak(rlp.encode([sender_bytes, nonce]))
    return to_checksum_address("0x" + hash_bytes[-20:].hex())


def parse_signature(function_signature: str) -> Tuple[str, List[str]]:
    """
    Split "transfer(address,uint256)" into ("transfer", ["address", "uint256"]).
    """
    try:
        args_start = function_signature.index("(")
        args_end = function_signature.rindex(")")
    except ValueError:
        raise ValueError(f"Malformed function signature: {function_signature!r}")
    name = function_signature[:args_start].strip()
    if not name:
        raise ValueError(f"Malformed function signature: {function_signature!r}")
    arg_types_str = function_signature[args_start + 1:args_end]
    arg_types = [t.strip() for t in arg_types_str.split(",") if t.strip()]
    return name, arg_types


def canonical_signature(function_signature: str) -> str:
    """Strip whitespace so equivalent signatures hash to the same selector."""
    name, arg_types = parse_signature(function_signature)
    return f"{name}({','.join(arg_types)})"


def compute_function_selector(function_signature: str) -> bytes:
    """
    Compute Ethereum function selector (first 4 bytes of keccak256(sig)).

    Args:
        function_signature: Function signature like "transfer(address,uint256)"
    """
    return keccak(canonical_signature(function_signature).encode("utf-8"))[:4]


def encode_function_call(function_signature: str, *args: Any) -> bytes:
    """
    Encode function call data (selector + ABI-encoded arguments).

    Args:
        function_signature: e.g. "mint(address,uint256)" (selector 0x40c10f19)
        *args: Function arguments, in signature order
    """
    selector = compute_function_selector(function_signature)
    _, arg_types = parse_signature(function_signature)
    if len(arg_types) != len(args):
        raise ValueError(
            f"{function_signature} takes {len(arg_types)} arguments, got {len(args)}"
        )
    if not arg_types:
        return selector
    return selector + encode(arg_types, list(args))


def decode_function_call(data: bytes) -> Tuple[bytes, bytes]:
    """
    Split call data into selector and encoded arguments.

    Returns ``(b"", b"")`` when *data* is too short to hold a selector.
    """
    if len(data) < 4:
        return b"", b""
    return data[:4], data[4:]


def decode_arguments(arg_types: Sequence[str], data: bytes) -> Tuple[Any, ...]:
    """ABI-decode *data* against *arg_types*."""
    if not arg_types:
        return ()
    return tuple(decode(list(arg_types), data))


def parse_call_data(value: str) -> bytes:
    """Parse 0x-prefixed (or bare) hex call data from user input."""
    text = value.strip()
    if text.startswith(("0x", "0X")):
        text = text[2:]
    try:
        return bytes.fromhex(text)
    except ValueError as e:
        raise ValueError(f"Call data is not valid hex: {value!r}") from e
