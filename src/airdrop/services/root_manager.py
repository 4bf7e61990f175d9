"""
Merkle Airdrop Distributor - Root Manager

Owner-only rotation of the trusted Merkle root and recovery of the
remaining reserve.

Rotating the root opens a new allocation epoch without touching claim
records: an address that claimed under an earlier root stays claimed even
if the new tree includes it again.
"""

import asyncio
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

import structlog

from airdrop.crypto.leaf import InputError, normalize_address
from airdrop.crypto.merkle import hash_to_hex, hex_to_hash
from airdrop.metrics import get_airdrop_metrics
from airdrop.services.errors import (
    DistributorError,
    InsufficientContractBalance,
    RootUnchanged,
    Unauthorized,
)
from airdrop.services.state import AirdropConfig, AirdropStore

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class RootUpdated:
    """Notification emitted after a root rotation."""

    previous_root: bytes
    new_root: bytes
    epoch: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "event": "RootUpdated",
            "previous_root": hash_to_hex(self.previous_root),
            "new_root": hash_to_hex(self.new_root),
            "epoch": self.epoch,
        }


@dataclass(frozen=True)
class FundsWithdrawn:
    """Notification emitted after the owner withdraws the reserve."""

    owner: str
    amount: int

    def to_dict(self) -> dict[str, Any]:
        return {"event": "FundsWithdrawn", "owner": self.owner, "amount": str(self.amount)}


def decode_root(root: bytes | str) -> bytes:
    """
    Accept a root as 32 raw bytes or 0x-hex.

    Raises:
        InputError: If the root is not a 32-byte hash
    """
    if isinstance(root, (bytes, bytearray)):
        if len(root) != 32:
            raise InputError(f"Root must be 32 bytes, got {len(root)}")
        return bytes(root)
    try:
        return hex_to_hash(root)
    except (TypeError, ValueError) as e:
        raise InputError(f"Invalid root: {e}") from e


class RootManager:
    """Owner-gated management of the distributor configuration."""

    def __init__(
        self,
        config: AirdropConfig,
        store: AirdropStore,
        lock: asyncio.Lock,
        emit: Callable[[Any], None],
    ) -> None:
        self._config = config
        self._store = store
        self._lock = lock
        self._emit = emit
        self._metrics = get_airdrop_metrics()

    def _require_owner(self, caller: str, operation: str) -> None:
        if normalize_address(caller) != self._config.owner:
            raise Unauthorized(f"{operation} called by {caller}")

    async def update_root(self, new_root: bytes | str, caller: str) -> RootUpdated:
        """
        Replace the trusted root.

        Args:
            new_root: Root of the next allocation tree
            caller: Must be the owner

        Returns:
            The RootUpdated event

        Raises:
            Unauthorized: If caller is not the owner
            RootUnchanged: If new_root equals the current root
            InsufficientContractBalance: If the reserve is empty or below the floor
            InputError: If new_root is not a 32-byte hash
        """
        async with self._lock:
            try:
                self._require_owner(caller, "update_root")

                root = decode_root(new_root)
                if root == self._config.root:
                    raise RootUnchanged()

                reserve = self._config.reserve()
                if reserve == 0 or reserve < self._config.reserve_floor:
                    raise InsufficientContractBalance(
                        f"reserve {reserve}, floor {self._config.reserve_floor}"
                    )
            except DistributorError as e:
                self._metrics.record_owner_rejection("update_root", e.code)
                logger.warning("Root update rejected", caller=caller, reason=e.reason)
                raise

            epoch = self._config.epoch + 1
            await self._store.set_root(root, epoch)

            event = RootUpdated(previous_root=self._config.root, new_root=root, epoch=epoch)
            self._config.root = root
            self._config.epoch = epoch

        self._metrics.record_root_rotation()
        logger.info(
            "Merkle root updated",
            previous_root=hash_to_hex(event.previous_root),
            new_root=hash_to_hex(event.new_root),
            epoch=epoch,
        )
        self._emit(event)
        return event

    async def withdraw(self, caller: str) -> FundsWithdrawn:
        """
        Transfer the entire reserve to the owner.

        Raises:
            Unauthorized: If caller is not the owner
        """
        async with self._lock:
            try:
                self._require_owner(caller, "withdraw")
            except DistributorError as e:
                self._metrics.record_owner_rejection("withdraw", e.code)
                logger.warning("Withdrawal rejected", caller=caller, reason=e.reason)
                raise

            amount = self._config.reserve()
            if amount:
                self._config.token.transfer(self._config.address, self._config.owner, amount)

        self._metrics.record_withdrawal()
        self._metrics.update_reserve(0)
        logger.info("Reserve withdrawn", owner=self._config.owner, amount=amount)

        event = FundsWithdrawn(owner=self._config.owner, amount=amount)
        self._emit(event)
        return event
