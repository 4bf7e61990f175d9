"""
Merkle Airdrop Distributor - Airdrop Repository

Database operations for claim records and root epochs, plus the
SQL-backed implementation of the distributor's AirdropStore.
"""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import datetime, timezone

import structlog
from sqlalchemy import text
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from airdrop.crypto.merkle import hash_to_hex, hex_to_hash
from airdrop.services.state import ClaimConflict, ClaimRecord, RootRecord

logger = structlog.get_logger(__name__)


def _as_datetime(value: datetime | str) -> datetime:
    # SQLite hands timestamps back as ISO strings
    if isinstance(value, str):
        return datetime.fromisoformat(value)
    return value


class AirdropRepository:
    """Repository for claim and root database operations."""

    def __init__(self, session: AsyncSession) -> None:
        """
        Initialize repository with database session.

        Args:
            session: Async SQLAlchemy session
        """
        self._session = session

    async def insert_claim(self, record: ClaimRecord) -> None:
        """
        Insert a claim record without committing.

        Raises:
            IntegrityError: If the address already has a claim
        """
        query = text("""
            INSERT INTO airdrop_claims (address, amount, root, claimed_at)
            VALUES (:address, :amount, :root, :claimed_at)
        """)

        await self._session.execute(
            query,
            {
                "address": record.address,
                "amount": str(record.amount),
                "root": hash_to_hex(record.root),
                "claimed_at": record.claimed_at,
            },
        )

    async def get_claim(self, address: str) -> ClaimRecord | None:
        """
        Get the claim for an address.

        Args:
            address: Checksummed address

        Returns:
            ClaimRecord or None if the address has not claimed
        """
        query = text("""
            SELECT address, amount, root, claimed_at
            FROM airdrop_claims
            WHERE address = :address
        """)

        result = await self._session.execute(query, {"address": address})
        row = result.fetchone()

        if not row:
            return None

        return ClaimRecord(
            address=row.address,
            amount=int(row.amount),
            root=hex_to_hash(row.root),
            claimed_at=_as_datetime(row.claimed_at),
        )

    async def get_current_root(self) -> RootRecord | None:
        """Get the latest root epoch."""
        query = text("""
            SELECT epoch, root, rotated_at
            FROM airdrop_roots
            ORDER BY epoch DESC
            LIMIT 1
        """)

        result = await self._session.execute(query)
        row = result.fetchone()

        if not row:
            return None

        return RootRecord(
            epoch=row.epoch,
            root=hex_to_hash(row.root),
            rotated_at=_as_datetime(row.rotated_at),
        )

    async def insert_root(self, root: bytes, epoch: int) -> None:
        """Append a root epoch and commit."""
        query = text("""
            INSERT INTO airdrop_roots (epoch, root, rotated_at)
            VALUES (:epoch, :root, :rotated_at)
        """)

        await self._session.execute(
            query,
            {
                "epoch": epoch,
                "root": hash_to_hex(root),
                "rotated_at": datetime.now(timezone.utc),
            },
        )
        await self._session.commit()


class SqlAirdropStore:
    """AirdropStore backed by the airdrop_claims and airdrop_roots tables."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def get_root(self) -> RootRecord | None:
        async with self._session_factory() as session:
            return await AirdropRepository(session).get_current_root()

    async def set_root(self, root: bytes, epoch: int) -> None:
        async with self._session_factory() as session:
            await AirdropRepository(session).insert_root(root, epoch)

    async def is_claimed(self, address: str) -> bool:
        return await self.get_claim(address) is not None

    async def get_claim(self, address: str) -> ClaimRecord | None:
        async with self._session_factory() as session:
            return await AirdropRepository(session).get_claim(address)

    @asynccontextmanager
    async def record_claim(
        self,
        address: str,
        amount: int,
        root: bytes,
    ) -> AsyncIterator[None]:
        async with self._session_factory() as session:
            try:
                await AirdropRepository(session).insert_claim(
                    ClaimRecord(address=address, amount=amount, root=root)
                )
            except IntegrityError as e:
                await session.rollback()
                raise ClaimConflict(address) from e

            try:
                yield
            except BaseException:
                await session.rollback()
                logger.warning("Claim record rolled back", address=address)
                raise

            await session.commit()
