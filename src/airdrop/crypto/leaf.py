"""
Merkle Airdrop Distributor - Leaf Encoding

Canonical encoding of a single (address, amount) allocation into a leaf hash.

The leaf hash is keccak256(keccak256(abi.encode(address, uint256))), the same
rule a Solidity verifier applies to msg.sender and the claimed amount. The
outer hash keeps a 64-byte internal node preimage from ever matching the
64-byte ABI payload of a leaf (second preimage protection).
"""

from dataclasses import dataclass

from eth_abi import encode as abi_encode
from eth_utils import is_address, is_checksum_address, keccak, to_checksum_address

# Leaf schema identifier, stored in the tree artifact
LEAF_ENCODING: tuple[str, str] = ("address", "uint256")

UINT256_MAX = 2**256 - 1
ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"
HASH_LENGTH = 32


class InputError(ValueError):
    """Raised for malformed allocation input (address or amount)."""

    pass


def normalize_address(address: str) -> str:
    """
    Validate an EVM address and return its EIP-55 checksum form.

    Mixed-case input must carry a valid checksum; all-lower or all-upper
    input is accepted as is.

    Raises:
        InputError: If the address is not a 20-byte hex address
    """
    if not isinstance(address, str):
        raise InputError(f"Address must be a string, got {type(address).__name__}")

    candidate = address.strip()
    if not candidate.startswith(("0x", "0X")) or not is_address(candidate):
        raise InputError(f"Invalid address: {address!r}")

    body = candidate[2:]
    if body != body.lower() and body != body.upper() and not is_checksum_address("0x" + body):
        raise InputError(f"Invalid address checksum: {address!r}")

    return to_checksum_address(candidate)


def normalize_amount(amount: int | str) -> int:
    """
    Validate an allocation amount as a uint256.

    Accepts ints and base-10 integer strings.

    Raises:
        InputError: If the amount is not an integer, negative, or overflows uint256
    """
    if isinstance(amount, bool):
        raise InputError("Amount must be an integer, got bool")

    if isinstance(amount, str):
        text = amount.strip()
        if not text.isdigit():
            raise InputError(f"Amount must be a non-negative integer, got {amount!r}")
        value = int(text)
    elif isinstance(amount, int):
        value = amount
    else:
        raise InputError(f"Amount must be an integer, got {type(amount).__name__}")

    if value < 0:
        raise InputError(f"Amount must be non-negative, got {value}")
    if value > UINT256_MAX:
        raise InputError(f"Amount {value} overflows uint256")

    return value


def encode_leaf(address: str, amount: int | str) -> bytes:
    """ABI-encode an allocation as (address, uint256)."""
    return abi_encode(
        list(LEAF_ENCODING),
        [normalize_address(address), normalize_amount(amount)],
    )


def leaf_hash(address: str, amount: int | str) -> bytes:
    """
    Compute the double-hashed leaf for an allocation.

    Args:
        address: Claimant address (any valid hex form)
        amount: Allocated amount

    Returns:
        32-byte leaf hash

    Raises:
        InputError: On malformed address or amount
    """
    return keccak(keccak(encode_leaf(address, amount)))


@dataclass(frozen=True)
class Leaf:
    """
    One committed allocation.

    Attributes:
        address: Checksummed claimant address
        amount: Allocated amount (uint256)
        hash: Double-hashed leaf
    """

    address: str
    amount: int
    hash: bytes

    @classmethod
    def create(cls, address: str, amount: int | str) -> "Leaf":
        """Normalize inputs and derive the leaf hash."""
        normalized_address = normalize_address(address)
        normalized_amount = normalize_amount(amount)
        return cls(
            address=normalized_address,
            amount=normalized_amount,
            hash=leaf_hash(normalized_address, normalized_amount),
        )

    def to_value(self) -> list[str]:
        """Artifact form: [address, decimal amount]."""
        return [self.address, str(self.amount)]
