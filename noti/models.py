# noti/models.py
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional


class Source(str, Enum):
    """Channels a payment notification can come from."""
    MOMO = "momo"
    MBBANK = "mbbank"

    @property
    def label(self) -> str:
        return _SOURCE_LABELS[self]

    @classmethod
    def values(cls) -> List[str]:
        return [s.value for s in cls]

    @classmethod
    def labels(cls) -> Dict[str, str]:
        return {s.value: s.label for s in cls}


_SOURCE_LABELS = {
    Source.MOMO: "MoMo",
    Source.MBBANK: "MB Bank",
}


def _as_utc(value: Any) -> datetime:
    """Stored timestamps without an offset are UTC (SQLite drops tzinfo)."""
    if isinstance(value, str):
        value = datetime.fromisoformat(value)
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


@dataclass(frozen=True)
class Transaction:
    id: str
    amount: int
    source: str
    raw_text: Optional[str]
    created_at: datetime

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "Transaction":
        return cls(
            id=str(row["id"]),
            amount=int(row["amount"]),
            source=str(row["source"]),
            raw_text=row.get("raw_text"),
            created_at=_as_utc(row["created_at"]),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "amount": self.amount,
            "source": self.source,
            "raw_text": self.raw_text,
            "created_at": self.created_at.isoformat(),
        }
