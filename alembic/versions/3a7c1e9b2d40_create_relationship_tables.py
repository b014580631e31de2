"""create users, friend_edges and friend_requests

Revision ID: 3a7c1e9b2d40
Revises:
Create Date: 2026-10-19 14:10:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "3a7c1e9b2d40"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.Uuid(as_uuid=True), primary_key=True),
        sa.Column("account_id", sa.BigInteger(), nullable=False),
        sa.Column("email", sa.String(length=320), nullable=False),
        sa.Column("username", sa.String(length=50), nullable=False),
        sa.Column("display_name", sa.String(length=120), nullable=False),
        sa.Column("avatar_url", sa.String(length=500), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.CheckConstraint("account_id > 0", name="ck_users_account_id_positive"),
    )
    op.create_index("ix_users_account_id", "users", ["account_id"], unique=True)
    op.create_index("ix_users_email", "users", ["email"], unique=True)
    op.create_index("ix_users_username", "users", ["username"], unique=True)

    op.create_table(
        "friend_edges",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("account_id", sa.BigInteger(), nullable=False),
        sa.Column("related_account_id", sa.BigInteger(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.UniqueConstraint("account_id", "related_account_id", name="uq_friend_edges_pair"),
        sa.CheckConstraint("account_id <> related_account_id", name="ck_friend_edges_not_self"),
    )
    op.create_index("ix_friend_edges_account_id", "friend_edges", ["account_id"], unique=False)
    op.create_index("ix_friend_edges_related_account_id", "friend_edges", ["related_account_id"], unique=False)

    op.create_table(
        "friend_requests",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("from_account_id", sa.BigInteger(), nullable=False),
        sa.Column("to_account_id", sa.BigInteger(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.UniqueConstraint("from_account_id", "to_account_id", name="uq_friend_requests_pair"),
        sa.CheckConstraint("from_account_id <> to_account_id", name="ck_friend_requests_not_self"),
    )
    op.create_index("ix_friend_requests_from_account_id", "friend_requests", ["from_account_id"], unique=False)
    op.create_index("ix_friend_requests_to_account_id", "friend_requests", ["to_account_id"], unique=False)


def downgrade() -> None:
    op.drop_index("ix_friend_requests_to_account_id", table_name="friend_requests")
    op.drop_index("ix_friend_requests_from_account_id", table_name="friend_requests")
    op.drop_table("friend_requests")
    op.drop_index("ix_friend_edges_related_account_id", table_name="friend_edges")
    op.drop_index("ix_friend_edges_account_id", table_name="friend_edges")
    op.drop_table("friend_edges")
    op.drop_index("ix_users_username", table_name="users")
    op.drop_index("ix_users_email", table_name="users")
    op.drop_index("ix_users_account_id", table_name="users")
    op.drop_table("users")
