from __future__ import annotations

import sqlalchemy as sa
from sqlalchemy.orm import Mapped, mapped_column
from datetime import datetime

from app.db.base_class import Base


class FriendRequest(Base):
    __tablename__ = "friend_requests"

    id: Mapped[int] = mapped_column(sa.Integer, primary_key=True, autoincrement=True)

    from_account_id: Mapped[int] = mapped_column(sa.BigInteger, nullable=False, index=True)
    to_account_id: Mapped[int] = mapped_column(sa.BigInteger, nullable=False, index=True)

    created_at: Mapped[datetime] = mapped_column(sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False)

    __table_args__ = (
        sa.UniqueConstraint("from_account_id", "to_account_id", name="uq_friend_requests_pair"),
        sa.CheckConstraint("from_account_id <> to_account_id", name="ck_friend_requests_not_self"),
    )
