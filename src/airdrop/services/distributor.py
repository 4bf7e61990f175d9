"""
Merkle Airdrop Distributor - Distributor Service

Binds the claim verifier and root manager to one configuration, one store
and one lock. Every claim, root update and withdrawal runs as a single
serialized transition under that lock, so balance and eligibility reads
always see the same state the mutation applies to.
"""

import asyncio
from collections.abc import Callable, Sequence
from typing import Any

import structlog

from airdrop.crypto.leaf import normalize_address
from airdrop.crypto.merkle import hash_to_hex
from airdrop.services.claim_verifier import AirdropClaimed, ClaimVerifier
from airdrop.services.ledger import EligibilityRegistry, TokenLedger
from airdrop.services.root_manager import FundsWithdrawn, RootManager, RootUpdated, decode_root
from airdrop.services.state import (
    AirdropConfig,
    AirdropStore,
    ClaimRecord,
    InMemoryAirdropStore,
)

logger = structlog.get_logger(__name__)

Listener = Callable[[Any], None]


class AirdropDistributor:
    """
    Merkle airdrop distributor.

    Example:
        >>> distributor = AirdropDistributor(address, token, nft, owner, tree.root)
        >>> await distributor.initialize()
        >>> await distributor.claim(500, proof, caller=claimant)
    """

    def __init__(
        self,
        address: str,
        token: TokenLedger,
        eligibility: EligibilityRegistry,
        owner: str,
        root: bytes | str,
        store: AirdropStore | None = None,
        reserve_floor: int = 0,
    ) -> None:
        self._config = AirdropConfig(
            address=normalize_address(address),
            token=token,
            eligibility=eligibility,
            owner=normalize_address(owner),
            root=decode_root(root),
            reserve_floor=reserve_floor,
        )
        self._store = store if store is not None else InMemoryAirdropStore()
        self._lock = asyncio.Lock()
        self._listeners: list[Listener] = []

        self._claims = ClaimVerifier(self._config, self._store, self._lock, self._emit)
        self._roots = RootManager(self._config, self._store, self._lock, self._emit)

    async def initialize(self) -> None:
        """
        Restore the persisted root epoch, or persist the initial root.

        A store that already holds a root wins over the constructor argument,
        so a restarted service keeps the last rotated root.
        """
        async with self._lock:
            persisted = await self._store.get_root()
            if persisted is None:
                await self._store.set_root(self._config.root, 0)
            else:
                self._config.root = persisted.root
                self._config.epoch = persisted.epoch

        logger.info(
            "Distributor initialized",
            address=self._config.address,
            token=self.token,
            eligibility=self.eligibility,
            root=hash_to_hex(self._config.root),
            epoch=self._config.epoch,
            reserve=self.reserve(),
        )

    # Events

    def subscribe(self, listener: Listener) -> None:
        """Register a callback for committed events."""
        self._listeners.append(listener)

    def _emit(self, event: Any) -> None:
        # State is already committed; a broken listener must not look like a failed claim
        for listener in self._listeners:
            try:
                listener(event)
            except Exception:
                logger.exception("Event listener failed", event_type=type(event).__name__)

    # Entrypoints

    async def claim(
        self,
        amount: int | str,
        proof: Sequence[bytes | str],
        caller: str,
    ) -> AirdropClaimed:
        """Claim the caller's allocation. See ClaimVerifier.claim()."""
        return await self._claims.claim(amount, proof, caller)

    async def update_root(self, new_root: bytes | str, caller: str) -> RootUpdated:
        """Rotate the trusted root. See RootManager.update_root()."""
        return await self._roots.update_root(new_root, caller)

    async def withdraw(self, caller: str) -> FundsWithdrawn:
        """Withdraw the whole reserve to the owner. See RootManager.withdraw()."""
        return await self._roots.withdraw(caller)

    # Read accessors

    @property
    def address(self) -> str:
        return self._config.address

    @property
    def token(self) -> str:
        return self._config.token.address

    @property
    def eligibility(self) -> str:
        return self._config.eligibility.address

    @property
    def owner(self) -> str:
        return self._config.owner

    @property
    def root(self) -> bytes:
        return self._config.root

    @property
    def epoch(self) -> int:
        return self._config.epoch

    def reserve(self) -> int:
        return self._config.reserve()

    async def claimed(self, address: str) -> bool:
        return await self._claims.is_claimed(address)

    async def get_claim(self, address: str) -> ClaimRecord | None:
        return await self._store.get_claim(normalize_address(address))

    def to_dict(self) -> dict[str, Any]:
        """Serialize configuration for API responses."""
        return {
            "address": self.address,
            "token": self.token,
            "eligibility": self.eligibility,
            "owner": self.owner,
            "root": hash_to_hex(self.root),
            "epoch": self.epoch,
            "reserve": str(self.reserve()),
        }
