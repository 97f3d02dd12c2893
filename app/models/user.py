"""
Postify Backend — User SQLAlchemy Model
=========================================

What:  ORM model for the `users` table.
Who:   Rows are created by the external auth service; this backend only
       reads them to resolve a token's `sub` claim and to show usernames
       next to posts and comments.
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import DateTime, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from app.database import Base


class User(Base):
    """A registered account. Referenced by id from posts, comments and likes."""

    __tablename__ = "users"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid.uuid4,
    )

    username: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
        unique=True,
        comment="Display name shown on posts and comments",
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )

    def __repr__(self) -> str:
        return f"<User(id={self.id}, username='{self.username}')>"
