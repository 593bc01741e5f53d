from __future__ import annotations

import base64
import json
import zlib
from datetime import datetime, timezone

import pytest

from storage_logger.backup import (
    BackupCodec,
    BackupFormatError,
    decode_image_base64,
    encode_image_base64,
)
from storage_logger.blobs import BlobStore
from storage_logger.models import Entry, TransportEntry


def test_widget_export_decompresses_to_single_transport_entry(blobs: BlobStore) -> None:
    codec = BackupCodec(blobs)
    artifact = codec.export_entries([Entry(id="a", name="Widget", price=9.99)])

    payload = codec.decompress(artifact)
    parsed = codec.parse(payload)

    assert len(parsed) == 1
    item = parsed[0]
    assert item.id == "a"
    assert item.name == "Widget"
    assert item.price == 9.99
    assert item.image_base64 is None


def test_payload_is_pretty_printed_json_with_iso_dates(blobs: BlobStore) -> None:
    bought = datetime(2025, 4, 12, 8, 0, tzinfo=timezone.utc)
    blobs.write("photo.jpg", b"\xff\xd8jpeg-bytes")
    codec = BackupCodec(blobs)
    entries = [Entry(id="a", image_ref="photo.jpg", name="Widget", buy_date=bought)]

    payload = zlib.decompress(codec.export_entries(entries)).decode("utf-8")

    assert payload.startswith("[\n  {")
    records = json.loads(payload)
    assert records[0]["imageBase64"] == base64.b64encode(b"\xff\xd8jpeg-bytes").decode("ascii")
    assert "imageFilename" not in records[0]
    assert datetime.fromisoformat(records[0]["buyDate"].replace("Z", "+00:00")) == bought


def test_missing_blob_exports_without_image(blobs: BlobStore) -> None:
    codec = BackupCodec(blobs)
    transport = codec.to_transport([Entry(id="a", image_ref="gone.jpg")])
    assert transport[0].image_base64 is None


def test_decode_artifact_rejects_undecompressable_bytes(blobs: BlobStore) -> None:
    codec = BackupCodec(blobs)
    with pytest.raises(BackupFormatError):
        codec.decode_artifact(b"this was never compressed")


def test_decode_artifact_rejects_malformed_json(blobs: BlobStore) -> None:
    codec = BackupCodec(blobs)
    with pytest.raises(BackupFormatError):
        codec.decode_artifact(zlib.compress(b"{\"not\": \"a list\"}"))


def test_parse_malformed_payload_returns_no_entries() -> None:
    assert BackupCodec.parse(b"[{\"name\": \"no id\"}]") == []
    assert BackupCodec.parse(b"not json at all") == []


def test_parse_accepts_null_fields() -> None:
    payload = json.dumps(
        [
            {
                "id": "a",
                "imageBase64": None,
                "name": None,
                "price": None,
                "quantity": 2,
                "description": None,
                "notes": None,
                "tags": None,
                "buyDate": "2025-04-12T08:00:00Z",
            }
        ]
    ).encode("utf-8")
    parsed = BackupCodec.parse(payload)
    assert parsed == [
        TransportEntry(
            id="a",
            quantity=2,
            buy_date=datetime(2025, 4, 12, 8, 0, tzinfo=timezone.utc),
        )
    ]


def test_base64_helpers() -> None:
    assert decode_image_base64(encode_image_base64(b"abc")) == b"abc"
    assert encode_image_base64(None) is None
    assert decode_image_base64(None) is None
    assert decode_image_base64("%%% not base64 %%%") is None
