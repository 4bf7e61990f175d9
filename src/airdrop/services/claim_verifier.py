"""
Merkle Airdrop Distributor - Claim Verifier

Validates claims against the trusted root and pays them out.

A claim runs its checks in a fixed order so that the reported rejection is
deterministic:

1. caller is the zero address          -> ZeroAddress
2. amount is zero                      -> ZeroAmount
3. reserve below amount                -> InsufficientContractBalance
4. caller holds no eligibility token   -> EligibilityError
5. caller already claimed              -> AlreadyClaimed
6. proof does not reach the root       -> ProofInvalid

On success the claim is recorded and the tokens transferred as one unit:
if the transfer fails the record is discarded.
"""

import asyncio
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from typing import Any

import structlog

from airdrop.crypto.leaf import ZERO_ADDRESS, leaf_hash, normalize_address, normalize_amount
from airdrop.crypto.merkle import hex_to_hash, verify_proof
from airdrop.metrics import get_airdrop_metrics
from airdrop.services.errors import (
    AlreadyClaimed,
    DistributorError,
    EligibilityError,
    InsufficientContractBalance,
    ProofInvalid,
    ZeroAddress,
    ZeroAmount,
)
from airdrop.services.state import AirdropConfig, AirdropStore, ClaimConflict

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class AirdropClaimed:
    """Notification emitted after a successful claim."""

    claimant: str
    amount: int

    def to_dict(self) -> dict[str, Any]:
        return {"event": "AirdropClaimed", "claimant": self.claimant, "amount": str(self.amount)}


def decode_proof(proof: Sequence[bytes | str]) -> list[bytes]:
    """
    Decode proof elements given as bytes or 0x-hex strings.

    Raises:
        ProofInvalid: If any element is not a 32-byte hash
    """
    decoded = []
    for element in proof:
        if isinstance(element, (bytes, bytearray)):
            decoded.append(bytes(element))
            continue
        try:
            decoded.append(hex_to_hash(element))
        except (TypeError, ValueError) as e:
            raise ProofInvalid(f"malformed proof element: {e}") from e
    return decoded


class ClaimVerifier:
    """
    Claim state machine.

    Owns the per-address claim records; everything else only reads them
    through is_claimed().
    """

    def __init__(
        self,
        config: AirdropConfig,
        store: AirdropStore,
        lock: asyncio.Lock,
        emit: Callable[[Any], None],
    ) -> None:
        """
        Initialize claim verifier.

        Args:
            config: Shared distributor configuration
            store: Claim record store
            lock: Lock serializing every distributor state transition
            emit: Callback receiving events after they are committed
        """
        self._config = config
        self._store = store
        self._lock = lock
        self._emit = emit
        self._metrics = get_airdrop_metrics()

    async def is_claimed(self, address: str) -> bool:
        """Whether an address has already claimed."""
        return await self._store.is_claimed(normalize_address(address))

    async def claim(
        self,
        amount: int | str,
        proof: Sequence[bytes | str],
        caller: str,
    ) -> AirdropClaimed:
        """
        Claim an allocation for the caller.

        Args:
            amount: Allocated amount committed in the tree
            proof: Sibling hashes, leaf-to-root
            caller: Claiming address

        Returns:
            The AirdropClaimed event

        Raises:
            DistributorError: If any check fails; nothing is changed
            InputError: If caller or amount is malformed
            TokenError: If the token rejects the transfer; nothing is changed
        """
        async with self._lock:
            try:
                event = await self._claim_locked(amount, proof, caller)
            except DistributorError as e:
                self._metrics.record_claim(e.code)
                logger.warning(
                    "Claim rejected",
                    claimant=caller,
                    amount=str(amount),
                    reason=e.reason,
                )
                raise

            reserve = self._config.reserve()

        self._metrics.record_claim("success", event.amount)
        self._metrics.update_reserve(reserve)
        logger.info(
            "Airdrop claimed",
            claimant=event.claimant,
            amount=event.amount,
            reserve=reserve,
        )
        self._emit(event)
        return event

    async def _claim_locked(
        self,
        amount: int | str,
        proof: Sequence[bytes | str],
        caller: str,
    ) -> AirdropClaimed:
        caller = normalize_address(caller)
        if caller == ZERO_ADDRESS:
            raise ZeroAddress()

        amount = normalize_amount(amount)
        if amount == 0:
            raise ZeroAmount()

        reserve = self._config.reserve()
        if reserve < amount:
            raise InsufficientContractBalance(f"reserve {reserve} < {amount}")

        if self._config.eligibility.balance_of(caller) == 0:
            raise EligibilityError(caller)

        if await self._store.is_claimed(caller):
            raise AlreadyClaimed(caller)

        root = self._config.root
        valid = verify_proof(root, leaf_hash(caller, amount), decode_proof(proof))
        self._metrics.record_merkle_verification(valid)
        if not valid:
            raise ProofInvalid()

        transferred = False
        try:
            async with self._store.record_claim(caller, amount, root):
                self._config.token.transfer(self._config.address, caller, amount)
                transferred = True
        except ClaimConflict as e:
            raise AlreadyClaimed(caller) from e
        except BaseException:
            if transferred:
                # Record was not committed; take the payout back
                self._config.token.transfer(caller, self._config.address, amount)
                logger.error("Claim commit failed, transfer reverted", claimant=caller, amount=amount)
            raise

        return AirdropClaimed(claimant=caller, amount=amount)
