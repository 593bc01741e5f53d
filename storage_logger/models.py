"""Entry records and their backup transport counterpart."""
from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional
import math
import uuid

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, field_validator


def new_entry_id() -> str:
    return str(uuid.uuid4()).upper()


def _parse_timestamp(value: Any) -> Optional[datetime]:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        parsed = value
    else:
        text = str(value).strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _serialize_timestamp(value: Optional[datetime]) -> Optional[str]:
    if value is None:
        return None
    return value.astimezone(timezone.utc).isoformat()


def _normalize_text(value: Any) -> Optional[str]:
    """Trim ``value``; empty or whitespace-only text becomes ``None``."""

    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _normalize_price(value: Any) -> Optional[float]:
    if value is None:
        return None
    if isinstance(value, str):
        if value.strip() == "":
            return None
        try:
            value = float(value.strip())
        except ValueError:
            return None
    try:
        price = float(value)
    except (TypeError, ValueError):
        return None
    if math.isnan(price):
        return None
    return price


def _normalize_quantity(value: Any) -> Optional[int]:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, str):
        if value.strip() == "":
            return None
        try:
            return int(value.strip())
        except ValueError:
            return None
    if isinstance(value, float) and not value.is_integer():
        return None
    try:
        return int(value)
    except (TypeError, ValueError, OverflowError):
        return None


def format_buy_date(value: Optional[datetime]) -> str:
    """Day-granularity label used when listing entries."""

    if value is None:
        return ""
    return value.strftime("%m/%d/%Y")


@dataclass
class Entry:
    """A single inventory record.

    ``image_ref`` is the filename of a blob in the image store. It is a weak
    handle: the blob may have disappeared, and readers must treat that as
    "no image".
    """

    id: str = field(default_factory=new_entry_id)
    image_ref: Optional[str] = None
    name: Optional[str] = None
    price: Optional[float] = None
    quantity: Optional[int] = None
    description: Optional[str] = None
    notes: Optional[str] = None
    tags: Optional[str] = None
    buy_date: Optional[datetime] = None

    def normalized(self) -> "Entry":
        """Return a copy with text trimmed to ``None`` and ``NaN`` prices dropped."""

        return replace(
            self,
            id=str(self.id or "").strip(),
            name=_normalize_text(self.name),
            price=_normalize_price(self.price),
            quantity=_normalize_quantity(self.quantity),
            description=_normalize_text(self.description),
            notes=_normalize_text(self.notes),
            tags=_normalize_text(self.tags),
            buy_date=_parse_timestamp(self.buy_date),
        )

    def searchable_text(self) -> str:
        parts = [self.name, self.description, self.notes, self.tags]
        return " ".join(part.lower() for part in parts if part)

    def to_record(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "imageFilename": self.image_ref,
            "name": self.name,
            "price": self.price,
            "quantity": self.quantity,
            "description": self.description,
            "notes": self.notes,
            "tags": self.tags,
            "buyDate": _serialize_timestamp(self.buy_date),
        }

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "image_ref": self.image_ref,
            "name": self.name,
            "price": self.price,
            "quantity": self.quantity,
            "description": self.description,
            "notes": self.notes,
            "tags": self.tags,
            "buy_date": _serialize_timestamp(self.buy_date),
            "buy_date_label": format_buy_date(self.buy_date),
        }

    @classmethod
    def from_record(cls, record: Dict[str, Any]) -> "Entry":
        entry_id = str(record.get("id") or "").strip()
        if not entry_id:
            raise ValueError("Entry record is missing an id")
        image_ref = record.get("imageFilename")
        return cls(
            id=entry_id,
            image_ref=str(image_ref) if image_ref else None,
            name=_normalize_text(record.get("name")),
            price=_normalize_price(record.get("price")),
            quantity=_normalize_quantity(record.get("quantity")),
            description=_normalize_text(record.get("description")),
            notes=_normalize_text(record.get("notes")),
            tags=_normalize_text(record.get("tags")),
            buy_date=_parse_timestamp(record.get("buyDate")),
        )


class TransportEntry(BaseModel):
    """Backup-file form of an :class:`Entry` with the image inlined as base64."""

    model_config = ConfigDict(populate_by_name=True)

    id: str
    image_base64: str | None = Field(default=None, alias="imageBase64")
    name: str | None = None
    price: float | None = None
    quantity: int | None = None
    description: str | None = None
    notes: str | None = None
    tags: str | None = None
    buy_date: datetime | None = Field(default=None, alias="buyDate")

    @field_validator("id", mode="before")
    @classmethod
    def _strip_id(cls, value: Any) -> Any:
        return value.strip() if isinstance(value, str) else value

    @classmethod
    def from_entry(cls, entry: Entry, image_base64: str | None) -> "TransportEntry":
        return cls(
            id=entry.id,
            image_base64=image_base64,
            name=entry.name,
            price=entry.price,
            quantity=entry.quantity,
            description=entry.description,
            notes=entry.notes,
            tags=entry.tags,
            buy_date=entry.buy_date,
        )

    def to_entry(self, image_ref: str | None) -> Entry:
        return Entry(
            id=self.id,
            image_ref=image_ref,
            name=self.name,
            price=self.price,
            quantity=self.quantity,
            description=self.description,
            notes=self.notes,
            tags=self.tags,
            buy_date=self.buy_date,
        ).normalized()


TransportEntryList = TypeAdapter(List[TransportEntry])


def filter_entries(entries: Iterable[Entry], query: Optional[str]) -> List[Entry]:
    """Keep entries whose text contains every whitespace-separated keyword."""

    items = list(entries)
    keywords = (query or "").lower().split()
    if not keywords:
        return items
    matched: List[Entry] = []
    for entry in items:
        text = entry.searchable_text()
        if all(keyword in text for keyword in keywords):
            matched.append(entry)
    return matched
