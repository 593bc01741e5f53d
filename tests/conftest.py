from __future__ import annotations

import io
from pathlib import Path
from typing import Callable, Tuple

import pytest
from PIL import Image

from storage_logger.blobs import BlobStore
from storage_logger.config import Settings
from storage_logger.images import ImageCodec
from storage_logger.kv import KeyValueStore
from storage_logger.repository import EntryRepository


def _make_image_bytes(
    color: Tuple[int, int, int] = (200, 30, 30),
    size: Tuple[int, int] = (32, 32),
    fmt: str = "PNG",
) -> bytes:
    buffer = io.BytesIO()
    Image.new("RGB", size, color).save(buffer, format=fmt)
    return buffer.getvalue()


@pytest.fixture()
def make_image() -> Callable[..., bytes]:
    return _make_image_bytes


@pytest.fixture()
def settings(tmp_path: Path) -> Settings:
    return Settings(data_dir=tmp_path / "data", environment="test", log_level="DEBUG")


@pytest.fixture()
def blobs(tmp_path: Path) -> BlobStore:
    return BlobStore(tmp_path / "ImageData")


@pytest.fixture()
def kv(tmp_path: Path) -> KeyValueStore:
    return KeyValueStore(tmp_path / "store.json")


@pytest.fixture()
def repository(kv: KeyValueStore, blobs: BlobStore) -> EntryRepository:
    return EntryRepository(kv=kv, blobs=blobs, codec=ImageCodec())
