from __future__ import annotations

import asyncio
import logging
import mimetypes
import os
from urllib.parse import urlparse

import httpx

from src.schema.input_schema import ImageFile


logger = logging.getLogger(__name__)


class ImageLoader:
    """Loads an image from a local path or an http(s) URL."""

    async def load(self, source: str) -> ImageFile | None:
        if source.startswith(("http://", "https://")):
            return await self._load_url(source)
        return await self._load_path(source)

    async def _load_url(self, url: str) -> ImageFile | None:
        try:
            async with httpx.AsyncClient(timeout=10.0, follow_redirects=True) as client:
                response = await client.get(url)

                if response.status_code == 200:
                    filename = os.path.basename(urlparse(url).path) or "image"
                    content_type = response.headers.get("content-type", "").split(";")[0] or _guess_type(filename)
                    return ImageFile(filename=filename, content_type=content_type, data=response.content)
                else:
                    logger.warning(f"Failed to load image from {url}: HTTP {response.status_code}")
                    return None
        except httpx.HTTPError as e:
            logger.warning(f"Failed to load image from {url}: {e}")
            return None

    async def _load_path(self, path: str) -> ImageFile | None:
        try:
            data = await asyncio.to_thread(_read_bytes, path)
        except OSError as e:
            logger.warning(f"Failed to load image from {path}: {e}")
            return None

        filename = os.path.basename(path)
        return ImageFile(filename=filename, content_type=_guess_type(filename), data=data)


def _read_bytes(path: str) -> bytes:
    with open(path, "rb") as f:
        return f.read()


def _guess_type(filename: str) -> str:
    return mimetypes.guess_type(filename)[0] or "application/octet-stream"
