"""
Database models for the SQL-backed key-value store.
Uses SQLAlchemy 2.0+ declarative mapping.
"""

from sqlalchemy import BigInteger, String, Text
from sqlalchemy.ext.asyncio import AsyncAttrs
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(AsyncAttrs, DeclarativeBase):
    """Base class for all models"""

    pass


class KVEntryDB(Base):
    """One key-value entry"""

    __tablename__ = "kv_entries"

    key: Mapped[str] = mapped_column(String(512), primary_key=True)
    value: Mapped[str] = mapped_column(Text, nullable=False)
    # epoch ms; NULL means the entry never expires
    expires_at: Mapped[int | None] = mapped_column(
        BigInteger, nullable=True, index=True
    )

    def __repr__(self) -> str:
        return f"<KVEntry(key={self.key}, expires_at={self.expires_at})>"
