"""Portable backup artifacts: base64-inlined entries, JSON, zlib."""

from __future__ import annotations

import base64
import binascii
import json
import zlib
from typing import Iterable

from loguru import logger
from pydantic import ValidationError

from .blobs import BlobStore
from .models import Entry, TransportEntry, TransportEntryList

COMPRESSION_LEVEL = 9


class BackupFormatError(Exception):
    """Raised when an artifact cannot be decompressed at all."""


def encode_image_base64(data: bytes | None) -> str | None:
    if data is None:
        return None
    return base64.b64encode(data).decode("ascii")


def decode_image_base64(text: str | None) -> bytes | None:
    """Decode an inlined image, returning ``None`` for malformed input."""
    if not text or not isinstance(text, str):
        return None
    try:
        return base64.b64decode(text, validate=True)
    except (binascii.Error, ValueError) as e:
        logger.warning(f"Failed to decode base64 image: {e}")
        return None


class BackupCodec:
    """Bidirectional transform between live entries and a compressed artifact."""

    def __init__(self, blobs: BlobStore) -> None:
        self.blobs = blobs

    def to_transport(self, entries: Iterable[Entry]) -> list[TransportEntry]:
        transport: list[TransportEntry] = []
        for entry in entries:
            image_b64 = None
            if entry.image_ref:
                data = self.blobs.read(entry.image_ref)
                if data is None:
                    logger.debug(f"Image {entry.image_ref} for entry {entry.id} missing, exporting without it")
                image_b64 = encode_image_base64(data)
            transport.append(TransportEntry.from_entry(entry, image_b64))
        return transport

    @staticmethod
    def serialize(transport: Iterable[TransportEntry]) -> bytes:
        payload = [item.model_dump(mode="json", by_alias=True) for item in transport]
        return json.dumps(payload, ensure_ascii=False, indent=2).encode("utf-8")

    @staticmethod
    def compress(payload: bytes) -> bytes:
        return zlib.compress(payload, COMPRESSION_LEVEL)

    @staticmethod
    def decompress(artifact: bytes) -> bytes:
        try:
            return zlib.decompress(artifact)
        except (zlib.error, TypeError) as e:
            raise BackupFormatError(f"artifact is not a valid backup: {e}") from e

    @staticmethod
    def load(payload: bytes) -> list[TransportEntry]:
        try:
            return TransportEntryList.validate_json(payload)
        except ValidationError as e:
            raise BackupFormatError(
                f"backup payload could not be parsed: {e.error_count()} error(s)"
            ) from e

    @classmethod
    def parse(cls, payload: bytes) -> list[TransportEntry]:
        """Parse decompressed JSON; malformed content yields no entries."""
        try:
            return cls.load(payload)
        except BackupFormatError as e:
            logger.warning(str(e))
            return []

    def export_entries(self, entries: Iterable[Entry]) -> bytes:
        transport = self.to_transport(entries)
        artifact = self.compress(self.serialize(transport))
        logger.info(f"Exported {len(transport)} entries into {len(artifact)} bytes")
        return artifact

    def decode_artifact(self, artifact: bytes) -> list[TransportEntry]:
        """Decompress and parse ``artifact``, raising :class:`BackupFormatError` if either fails."""
        return self.load(self.decompress(artifact))
