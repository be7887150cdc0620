# scrambler/entities.py
from datetime import datetime, timezone
from uuid import uuid4

from sqlalchemy import DateTime, Index, String, Text, text
from sqlalchemy.orm import Mapped, declarative_base, mapped_column

from typing import TypeAlias
UUID: TypeAlias = str
Base = declarative_base()

SESSION_ID_MAX_LENGTH = 64


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class User(Base):
    __tablename__ = "users"

    id: Mapped[UUID] = mapped_column(
        String(36),
        primary_key=True,
        default=lambda: str(uuid4()),
    )
    identifier: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)
    secret_digest: Mapped[str] = mapped_column(Text, nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=_utcnow,
    )


class KeyboardSession(Base):
    __tablename__ = "sessions"

    id: Mapped[str] = mapped_column(String(SESSION_ID_MAX_LENGTH), primary_key=True)

    # JSON list of glyph rows, congruent with KEY_GRID
    layout_map: Mapped[str] = mapped_column(Text, nullable=False)

    identifier_buffer: Mapped[str] = mapped_column(
        Text,
        nullable=False,
        default="",
        server_default=text("''"),
    )
    secret_buffer: Mapped[str] = mapped_column(
        Text,
        nullable=False,
        default="",
        server_default=text("''"),
    )
    active_field: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default="identifier",
        server_default=text("'identifier'"),
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=_utcnow,
    )
    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    __table_args__ = (
        Index("ix_sessions_expires_at", "expires_at"),
    )
