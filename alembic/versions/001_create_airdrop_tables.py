"""Create airdrop claim and root tables

Revision ID: 001
Revises: None
Create Date: 2026-10-19
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "airdrop_claims",
        sa.Column("address", sa.String(42), primary_key=True),
        sa.Column("amount", sa.String(78), nullable=False),
        sa.Column("root", sa.String(66), nullable=False),
        sa.Column("claimed_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("NOW()")),
    )

    op.create_index("idx_airdrop_claims_root", "airdrop_claims", ["root"])

    op.create_table(
        "airdrop_roots",
        sa.Column("epoch", sa.Integer, primary_key=True, autoincrement=False),
        sa.Column("root", sa.String(66), nullable=False),
        sa.Column("rotated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("NOW()")),
    )


def downgrade() -> None:
    op.drop_table("airdrop_roots")
    op.drop_table("airdrop_claims")
