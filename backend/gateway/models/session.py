"""
Board Gateway — Session SQLAlchemy Model
=========================================

What:  ORM model for the `sessions` table backing the session store.
Why:   The store provisions this table itself at startup (no migration step),
       so the model is the single source of truth for its shape.

Table Design Rationale:
    - session_id: opaque random token, primary key (lookups are by id only)
    - expires:    unix seconds; integer comparison works on every dialect and
                  the sweeper's range delete uses the index
    - data:       JSON text of the serialized payload (identity + extras)
"""

from sqlalchemy import Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from gateway.database import Base


class SessionRow(Base):

    __tablename__ = "sessions"

    session_id: Mapped[str] = mapped_column(
        String(128),
        primary_key=True,
        comment="Opaque session identifier carried in the sid cookie",
    )

    expires: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        comment="Expiry as unix seconds (UTC)",
    )

    data: Mapped[str] = mapped_column(
        Text,
        nullable=False,
        comment="Serialized session payload (JSON)",
    )

    __table_args__ = (
        Index("idx_sessions_expires", "expires"),
    )

    def __repr__(self) -> str:
        return f"<SessionRow(session_id='{self.session_id[:8]}...', expires={self.expires})>"
