from __future__ import annotations

import abc
import asyncio
import logging
from typing import Dict, List

from src.pipeline.errors import NotFoundError
from src.schema.output_schema import ProductRecord


logger = logging.getLogger(__name__)


class ProductStore(abc.ABC):
    @abc.abstractmethod
    async def append_images(self, product_name: str, locations: List[str]) -> ProductRecord:
        """Atomically append `locations` to the product's record, creating it if absent."""
        ...

    @abc.abstractmethod
    async def get_by_name(self, product_name: str) -> ProductRecord:
        """Return the record for `product_name` or raise NotFoundError."""
        ...

    async def ensure_indexes(self) -> None:
        return None

    async def ping(self) -> bool:
        return True

    async def close(self) -> None:
        return None


class InMemoryProductStore(ProductStore):
    """
    Process-local record store for development and tests.

    Appends are serialized by a lock so concurrent uploads for the same
    product never lose updates.
    """

    def __init__(self):
        self._records: Dict[str, List[str]] = {}
        self._lock = asyncio.Lock()

    async def append_images(self, product_name: str, locations: List[str]) -> ProductRecord:
        async with self._lock:
            images = self._records.setdefault(product_name, [])
            images.extend(locations)
            return ProductRecord(product_name=product_name, images=list(images))

    async def get_by_name(self, product_name: str) -> ProductRecord:
        async with self._lock:
            if product_name not in self._records:
                raise NotFoundError("Product not found")
            return ProductRecord(product_name=product_name, images=list(self._records[product_name]))
