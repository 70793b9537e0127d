# noti/store.py
from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import List, Optional

from sqlalchemy import (
    BigInteger,
    Column,
    DateTime,
    MetaData,
    String,
    Table,
    Text,
    create_engine,
    select,
)
from sqlalchemy.engine import Engine
from sqlalchemy.exc import ArgumentError, SQLAlchemyError

from noti.errors import ConfigurationError, StoreError
from noti.models import Transaction

metadata = MetaData()

transactions = Table(
    "transactions",
    metadata,
    Column("id", String(36), primary_key=True),
    Column("amount", BigInteger, nullable=False),
    Column("source", String(16), nullable=False),
    Column("raw_text", Text, nullable=True),
    Column("created_at", DateTime(timezone=True), nullable=False, index=True),
)


def _utc(dt: datetime) -> datetime:
    # SQLite keeps the wall clock and drops the offset, so everything goes in as UTC
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


class TransactionStore:
    """Reads and writes the transactions table. One statement per call."""

    def __init__(self, engine: Engine):
        self.engine = engine

    @classmethod
    def from_url(cls, url: str) -> "TransactionStore":
        try:
            engine = create_engine(url, pool_pre_ping=True)
        except ArgumentError as e:
            raise ConfigurationError(f"Invalid DATABASE_URL: {e}") from e
        return cls(engine)

    def create_schema(self) -> None:
        try:
            metadata.create_all(self.engine)
        except SQLAlchemyError as e:
            raise StoreError(f"Could not create schema: {e}") from e

    def insert(
        self,
        amount: int,
        source: str,
        raw_text: Optional[str] = None,
        created_at: Optional[datetime] = None,
    ) -> Transaction:
        row = {
            "id": str(uuid.uuid4()),
            "amount": int(amount),
            "source": str(source),
            "raw_text": raw_text,
            "created_at": _utc(created_at or datetime.now(timezone.utc)),
        }
        try:
            with self.engine.begin() as conn:
                conn.execute(transactions.insert(), row)
        except SQLAlchemyError as e:
            raise StoreError(f"Insert failed: {e}") from e
        return Transaction.from_row(row)

    def list(
        self, start: Optional[datetime] = None, end: Optional[datetime] = None
    ) -> List[Transaction]:
        """Transactions with start <= created_at <= end, newest first."""
        stmt = select(transactions).order_by(transactions.c.created_at.desc())
        if start is not None:
            stmt = stmt.where(transactions.c.created_at >= _utc(start))
        if end is not None:
            stmt = stmt.where(transactions.c.created_at <= _utc(end))
        try:
            with self.engine.connect() as conn:
                rows = conn.execute(stmt).mappings().all()
        except SQLAlchemyError as e:
            raise StoreError(f"Query failed: {e}") from e
        return [Transaction.from_row(r) for r in rows]

    def dispose(self) -> None:
        self.engine.dispose()
