"""Entry repository persisted through the key-value store."""
from __future__ import annotations

from copy import deepcopy
from dataclasses import dataclass, field, replace
from threading import RLock
from typing import Any, Dict, Iterable, List, Optional

from loguru import logger

from .blobs import BlobStore
from .images import ImageCodec, RawImage
from .kv import KeyValueStore
from .models import Entry, filter_entries

ENTRIES_KEY = "entries"
AD_COUNTER_KEY = "counterForAd"

_EDITABLE_FIELDS = {
    "name",
    "price",
    "quantity",
    "description",
    "notes",
    "tags",
    "buy_date",
}


@dataclass
class EntryRepository:
    """Authoritative ordered collection of entries.

    Each mutating method changes the in-memory list and writes the whole
    collection back under :data:`ENTRIES_KEY` before returning. Image blobs
    are handled on a best-effort basis: a failed image write never blocks
    the entry mutation itself.
    """

    kv: KeyValueStore
    blobs: BlobStore
    codec: ImageCodec = field(default_factory=ImageCodec)
    ad_threshold: int = 5
    _entries: List[Entry] = field(default_factory=list, init=False)
    _lock: RLock = field(default_factory=RLock, init=False)

    def __post_init__(self) -> None:
        with self._lock:
            self._entries = self._load_entries_locked()
        self.reset_ad_counter()

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------
    @property
    def entries(self) -> List[Entry]:
        with self._lock:
            return deepcopy(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def get(self, entry_id: str) -> Optional[Entry]:
        with self._lock:
            index = self._index_of(entry_id)
            if index is None:
                return None
            return deepcopy(self._entries[index])

    def search(self, query: Optional[str]) -> List[Entry]:
        return filter_entries(self.entries, query)

    def image_bytes(self, entry_id: str) -> Optional[bytes]:
        entry = self.get(entry_id)
        if entry is None or not entry.image_ref:
            return None
        return self.blobs.read(entry.image_ref)

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------
    def add(self, entry: Entry, raw_image: Optional[RawImage] = None) -> Optional[Entry]:
        """Normalize and append ``entry``; returns ``None`` if its id is blank or taken."""

        normalized = entry.normalized()
        if not normalized.id:
            logger.warning("Entry without an id, ignoring add")
            return None
        with self._lock:
            if self._index_of(normalized.id) is not None:
                logger.warning(f"Entry {normalized.id} already exists, ignoring add")
                return None
            stored = replace(normalized, image_ref=self._save_image(raw_image))
            self._entries.append(stored)
            self._persist_locked()
            logger.info(f"Added entry {stored.id}")
            return deepcopy(stored)

    def update(
        self,
        entry_id: str,
        fields: Entry | Dict[str, Any],
        raw_image: Optional[RawImage] = None,
    ) -> Optional[Entry]:
        """Replace every field of ``entry_id``.

        The current image is always deleted. A new one is attached only when
        ``raw_image`` is supplied, so editing without reselecting a photo
        leaves the entry without an image.
        """

        with self._lock:
            index = self._index_of(entry_id)
            if index is None:
                return None
            current = self._entries[index]
            if current.image_ref:
                self.blobs.delete(current.image_ref)
            if isinstance(fields, Entry):
                updated = replace(fields, id=entry_id, image_ref=None)
            else:
                values = {
                    key: value for key, value in fields.items() if key in _EDITABLE_FIELDS
                }
                updated = Entry(id=entry_id, **values)
            stored = replace(updated.normalized(), image_ref=self._save_image(raw_image))
            self._entries[index] = stored
            self._persist_locked()
            logger.info(f"Updated entry {entry_id}")
            return deepcopy(stored)

    def remove(self, entry_id: str) -> bool:
        with self._lock:
            index = self._index_of(entry_id)
            if index is None:
                return False
            entry = self._entries[index]
            if entry.image_ref:
                self.blobs.delete(entry.image_ref)
            del self._entries[index]
            self._persist_locked()
            logger.info(f"Removed entry {entry_id}")
            return True

    def replace_all(self, entries: Iterable[Entry]) -> None:
        """Swap in a whole new collection, keeping the first of any duplicate ids.

        Entries with a blank id are dropped since they could not be reloaded.
        """

        collection: List[Entry] = []
        seen: set[str] = set()
        for entry in entries:
            if not str(entry.id or "").strip():
                logger.warning("Dropping entry without an id")
                continue
            if entry.id in seen:
                logger.warning(f"Dropping duplicate entry id {entry.id}")
                continue
            seen.add(entry.id)
            collection.append(deepcopy(entry))
        with self._lock:
            self._entries = collection
            self._persist_locked()

    # ------------------------------------------------------------------
    # Ad counter
    # ------------------------------------------------------------------
    @property
    def ad_counter(self) -> int:
        value = self.kv.get(AD_COUNTER_KEY, 1)
        try:
            return int(value)
        except (TypeError, ValueError):
            return 1

    def increment_ad_counter(self) -> int:
        value = self.ad_counter + 1
        self._set_ad_counter(value)
        return value

    def reset_ad_counter(self) -> None:
        self._set_ad_counter(1)

    def register_save(self) -> bool:
        """Advance the ad counter after a save; ``True`` means show an ad now."""

        if self.ad_counter >= self.ad_threshold:
            self.reset_ad_counter()
            return True
        self.increment_ad_counter()
        return False

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    def _index_of(self, entry_id: str) -> Optional[int]:
        for index, entry in enumerate(self._entries):
            if entry.id == entry_id:
                return index
        return None

    def _save_image(self, raw_image: Optional[RawImage]) -> Optional[str]:
        if raw_image is None:
            return None
        data = self.codec.encode(raw_image)
        if data is None:
            return None
        filename = self.codec.new_filename()
        if not self.blobs.write(filename, data):
            return None
        return filename

    def _set_ad_counter(self, value: int) -> None:
        try:
            self.kv.set(AD_COUNTER_KEY, value)
        except OSError as exc:
            logger.warning(f"Failed to persist ad counter: {exc}")

    def _load_entries_locked(self) -> List[Entry]:
        raw = self.kv.get(ENTRIES_KEY, [])
        if not isinstance(raw, list):
            logger.warning("Persisted entries are not a list, starting empty")
            return []
        entries: List[Entry] = []
        seen: set[str] = set()
        for record in raw:
            if not isinstance(record, dict):
                continue
            try:
                entry = Entry.from_record(record)
            except ValueError as exc:
                logger.warning(f"Skipping unreadable entry record: {exc}")
                continue
            if entry.id in seen:
                continue
            seen.add(entry.id)
            entries.append(entry)
        return entries

    def _persist_locked(self) -> None:
        try:
            self.kv.set(ENTRIES_KEY, [entry.to_record() for entry in self._entries])
        except OSError as exc:
            logger.warning(f"Failed to persist entries: {exc}")
