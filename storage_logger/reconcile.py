"""Merge imported backup entries into the live collection."""

from __future__ import annotations

from enum import StrEnum
from typing import Iterable

from loguru import logger

from .backup import decode_image_base64
from .blobs import BlobStore
from .images import ImageCodec
from .models import Entry, TransportEntry


class ImportMode(StrEnum):
    REPLACE = "replace"
    COMBINE = "combine"


def materialize_entry(
    item: TransportEntry,
    *,
    blobs: BlobStore,
    codec: ImageCodec,
) -> Entry:
    """Build a local entry from ``item`` under a freshly minted image filename.

    The filename is only kept when its blob was actually written.
    """
    image_ref = None
    data = decode_image_base64(item.image_base64)
    if data is not None:
        filename = codec.new_filename()
        if blobs.write(filename, data):
            image_ref = filename
    return item.to_entry(image_ref)


def reconcile_entries(
    imported: Iterable[TransportEntry],
    existing: Iterable[Entry],
    mode: ImportMode,
    *,
    blobs: BlobStore,
    codec: ImageCodec,
) -> list[Entry]:
    """Return the collection that results from importing ``imported``.

    ``REPLACE`` wipes the blob store and rebuilds from the import alone.
    ``COMBINE`` keeps ``existing`` untouched and appends only entries whose
    id is not already present; colliding imports contribute nothing.
    """
    mode = ImportMode(mode)
    if mode is ImportMode.REPLACE:
        removed = blobs.clear()
        logger.debug(f"Replace import cleared {removed} existing images")
        restored: list[Entry] = []
    else:
        restored = list(existing)

    known_ids = {entry.id for entry in restored}
    added = 0
    skipped = 0
    for item in imported:
        if not item.id:
            logger.warning("Skipping imported entry without an id")
            skipped += 1
            continue
        if item.id in known_ids:
            skipped += 1
            continue
        restored.append(materialize_entry(item, blobs=blobs, codec=codec))
        known_ids.add(item.id)
        added += 1

    logger.info(f"Reconciled import ({mode}): {added} added, {skipped} skipped")
    return restored
