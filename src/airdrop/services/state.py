"""
Merkle Airdrop Distributor - Distributor State

Holds the distributor configuration and the persistent claim/root store
contract. The claim store is keyed by address: a claim recorded under one
root is still a claim under every later root.
"""

from collections.abc import AsyncIterator
from contextlib import AbstractAsyncContextManager, asynccontextmanager
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Protocol

from airdrop.crypto.merkle import hash_to_hex
from airdrop.services.ledger import EligibilityRegistry, TokenLedger


class ClaimConflict(Exception):
    """Raised by a store when an address already has a recorded claim."""

    pass


@dataclass
class ClaimRecord:
    """Persisted claim of one address."""

    address: str
    amount: int
    root: bytes
    claimed_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for API responses."""
        return {
            "address": self.address,
            "amount": str(self.amount),
            "root": hash_to_hex(self.root),
            "claimed_at": self.claimed_at.isoformat(),
        }


@dataclass
class RootRecord:
    """One root epoch."""

    epoch: int
    root: bytes
    rotated_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


@dataclass
class AirdropConfig:
    """
    Distributor configuration.

    Attributes:
        address: The distributor's own account; its token balance is the reserve
        token: Token being distributed
        eligibility: Collection whose holders may claim
        owner: Account allowed to rotate the root and withdraw
        root: Currently trusted Merkle root
        epoch: Number of root rotations so far
        reserve_floor: Minimum reserve required to open a new epoch
    """

    address: str
    token: TokenLedger
    eligibility: EligibilityRegistry
    owner: str
    root: bytes
    epoch: int = 0
    reserve_floor: int = 0

    def reserve(self) -> int:
        """Current token balance held by the distributor."""
        return self.token.balance_of(self.address)


class AirdropStore(Protocol):
    """Persistent claim records and root history."""

    async def get_root(self) -> RootRecord | None: ...

    async def set_root(self, root: bytes, epoch: int) -> None: ...

    async def is_claimed(self, address: str) -> bool: ...

    async def get_claim(self, address: str) -> ClaimRecord | None: ...

    def record_claim(
        self,
        address: str,
        amount: int,
        root: bytes,
    ) -> AbstractAsyncContextManager[None]:
        """
        Stage a claim; it is committed only if the block exits cleanly.

        Raises:
            ClaimConflict: If the address already has a claim
        """
        ...


class InMemoryAirdropStore:
    """Process-local store, used by default and in tests."""

    def __init__(self) -> None:
        self._claims: dict[str, ClaimRecord] = {}
        self._roots: list[RootRecord] = []

    async def get_root(self) -> RootRecord | None:
        return self._roots[-1] if self._roots else None

    async def set_root(self, root: bytes, epoch: int) -> None:
        self._roots.append(RootRecord(epoch=epoch, root=root))

    async def root_history(self) -> list[RootRecord]:
        return list(self._roots)

    async def is_claimed(self, address: str) -> bool:
        return address in self._claims

    async def get_claim(self, address: str) -> ClaimRecord | None:
        return self._claims.get(address)

    @asynccontextmanager
    async def record_claim(
        self,
        address: str,
        amount: int,
        root: bytes,
    ) -> AsyncIterator[None]:
        if address in self._claims:
            raise ClaimConflict(address)
        yield
        self._claims[address] = ClaimRecord(address=address, amount=amount, root=root)
