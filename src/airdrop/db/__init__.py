"""
Merkle Airdrop Distributor - Database Package

Provides async database session management and the SQL claim store.
"""

from airdrop.db.session import (
    close_db,
    create_engine,
    create_session_factory,
    get_session_factory,
    init_db,
)

__all__ = [
    "close_db",
    "create_engine",
    "create_session_factory",
    "get_session_factory",
    "init_db",
]
