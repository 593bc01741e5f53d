"""Size-bounded JPEG encoding for entry photos."""

from __future__ import annotations

import io
import uuid
from typing import Union

from loguru import logger
from PIL import Image, UnidentifiedImageError

RawImage = Union[bytes, bytearray, Image.Image]

IMAGE_EXTENSION = "jpg"


class ImageCodec:
    """Re-encode a bitmap at decreasing JPEG quality until it fits ``max_bytes``."""

    def __init__(
        self,
        *,
        max_bytes: int = 150 * 1024,
        start_quality: int = 100,
        quality_step: int = 10,
        min_quality: int = 10,
    ) -> None:
        self.max_bytes = max(1, int(max_bytes))
        self.start_quality = min(100, max(1, int(start_quality)))
        self.quality_step = max(1, int(quality_step))
        self.min_quality = min(self.start_quality, max(1, int(min_quality)))

    @classmethod
    def from_settings(cls, settings) -> "ImageCodec":
        return cls(
            max_bytes=settings.max_image_bytes,
            start_quality=settings.jpeg_start_quality,
            quality_step=settings.jpeg_quality_step,
            min_quality=settings.jpeg_min_quality,
        )

    @staticmethod
    def new_filename() -> str:
        return f"{str(uuid.uuid4()).upper()}.{IMAGE_EXTENSION}"

    def encode(self, raw: RawImage | None) -> bytes | None:
        """Return JPEG bytes for ``raw``, or ``None`` if it cannot be encoded.

        An image that stays above the ceiling even at the quality floor is
        still returned as the floor-quality encoding.
        """
        if raw is None:
            return None
        try:
            image = self._load(raw)
        except (UnidentifiedImageError, OSError, ValueError) as e:
            logger.warning(f"Unable to decode image for encoding: {e}")
            return None

        quality = self.start_quality
        try:
            data = self._encode_at(image, quality)
            while len(data) > self.max_bytes and quality > self.min_quality:
                quality = max(self.min_quality, quality - self.quality_step)
                data = self._encode_at(image, quality)
        except (OSError, ValueError) as e:
            logger.warning(f"JPEG encoding failed at quality {quality}: {e}")
            return None

        if len(data) > self.max_bytes:
            logger.debug(
                f"Image still {len(data)} bytes at quality floor {quality}, "
                f"above ceiling {self.max_bytes}"
            )
        return data

    @staticmethod
    def _load(raw: RawImage) -> Image.Image:
        if isinstance(raw, Image.Image):
            image = raw
        else:
            image = Image.open(io.BytesIO(bytes(raw)))
            image.load()
        if image.mode != "RGB":
            image = image.convert("RGB")
        return image

    @staticmethod
    def _encode_at(image: Image.Image, quality: int) -> bytes:
        buffer = io.BytesIO()
        image.save(buffer, format="JPEG", quality=quality)
        return buffer.getvalue()
