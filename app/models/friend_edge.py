from __future__ import annotations

import sqlalchemy as sa
from sqlalchemy.orm import Mapped, mapped_column
from datetime import datetime

from app.db.base_class import Base


class FriendEdge(Base):
    """One direction of a confirmed friendship; every friendship is two rows."""

    __tablename__ = "friend_edges"

    id: Mapped[int] = mapped_column(sa.Integer, primary_key=True, autoincrement=True)

    account_id: Mapped[int] = mapped_column(sa.BigInteger, nullable=False, index=True)
    related_account_id: Mapped[int] = mapped_column(sa.BigInteger, nullable=False, index=True)

    created_at: Mapped[datetime] = mapped_column(sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False)

    __table_args__ = (
        sa.UniqueConstraint("account_id", "related_account_id", name="uq_friend_edges_pair"),
        sa.CheckConstraint("account_id <> related_account_id", name="ck_friend_edges_not_self"),
    )
