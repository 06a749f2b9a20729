"""Test doubles and image factories shared across test modules."""
from __future__ import annotations

import asyncio
import io
from typing import List, Optional

from PIL import Image

from src.pipeline.errors import UploadError
from src.schema.input_schema import ImageFile
from src.storage.client import ObjectStore


def make_image_bytes(width: int = 400, height: int = 400, fmt: str = "PNG", color=(0, 0, 0)) -> bytes:
    buffer = io.BytesIO()
    Image.new("RGB", (width, height), color=color).save(buffer, format=fmt)
    return buffer.getvalue()


def make_image_file(filename: str = "ring.png", width: int = 64, height: int = 64) -> ImageFile:
    return ImageFile(filename=filename, content_type="image/png", data=make_image_bytes(width, height))


class FakeObjectStore(ObjectStore):
    """Records uploads in memory; keys ending with a name in `fail_on` are rejected."""

    def __init__(self, fail_on: Optional[List[str]] = None, delay: float = 0.0):
        self.fail_on = fail_on or []
        self.delay = delay
        self.uploads = []

    async def upload(self, data: bytes, key: str, content_type: str) -> str:
        if self.delay:
            await asyncio.sleep(self.delay)
        if any(key.endswith(name) for name in self.fail_on):
            raise UploadError(f"S3 upload failed for '{key}'.")
        self.uploads.append((key, content_type, data))
        return f"https://bucket.s3.us-east-1.amazonaws.com/{key}"
