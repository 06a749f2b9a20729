from __future__ import annotations

import logging
from typing import Any, List, Optional

from pymongo import ASCENDING, AsyncMongoClient, ReturnDocument
from pymongo.errors import DuplicateKeyError, PyMongoError

from src.pipeline.errors import NotFoundError, PersistenceError
from src.records.store import ProductStore
from src.schema.output_schema import ProductRecord


logger = logging.getLogger(__name__)


PROJECTION = {"_id": False, "productName": True, "images": True}


class MongoProductStore(ProductStore):
    """
    Product records kept in one MongoDB collection as
    {productName: <unique str>, images: [<location>, ...]}.
    """

    def __init__(
        self,
        uri: Optional[str] = None,
        db_name: str = "products",
        collection_name: str = "images",
        client: Optional[AsyncMongoClient] = None,
        collection: Any = None,
    ):
        self.client = client
        if collection is None:
            if self.client is None:
                if not uri:
                    raise ValueError("MONGO_URI is not set")
                self.client = AsyncMongoClient(uri)
            collection = self.client[db_name][collection_name]
        self.collection = collection

        logger.info(f"Initialized MongoDB record store: db={db_name}, collection={collection_name}")

    async def ensure_indexes(self) -> None:
        try:
            await self.collection.create_index([("productName", ASCENDING)], unique=True)
        except PyMongoError as e:
            raise PersistenceError("Failed to create product indexes.", cause=e) from e

    async def append_images(self, product_name: str, locations: List[str]) -> ProductRecord:
        """
        Single atomic upsert: push all locations onto the record's images.

        Two concurrent first uploads for a new name can both attempt the insert;
        the loser hits the unique index and is retried once, which then
        matches the freshly inserted record.
        """
        update = {"$push": {"images": {"$each": list(locations)}}}

        for attempt in range(2):
            try:
                doc = await self.collection.find_one_and_update(
                    {"productName": product_name},
                    update,
                    upsert=True,
                    return_document=ReturnDocument.AFTER,
                    projection=PROJECTION,
                )
                return ProductRecord.model_validate(doc)
            except DuplicateKeyError as e:
                if attempt == 0:
                    logger.warning(f"Concurrent insert for product '{product_name}', retrying update")
                    continue
                raise PersistenceError("Failed to save image URLs to the database.", cause=e) from e
            except PyMongoError as e:
                logger.error(f"MongoDB update failed for product '{product_name}': {e}")
                raise PersistenceError("Failed to save image URLs to the database.", cause=e) from e

    async def get_by_name(self, product_name: str) -> ProductRecord:
        try:
            doc = await self.collection.find_one({"productName": product_name}, projection=PROJECTION)
        except PyMongoError as e:
            logger.error(f"MongoDB lookup failed for product '{product_name}': {e}")
            raise PersistenceError("Failed to fetch images", cause=e) from e

        if doc is None:
            raise NotFoundError("Product not found")
        return ProductRecord.model_validate(doc)

    async def ping(self) -> bool:
        if self.client is None:
            return True
        try:
            await self.client.admin.command("ping")
            return True
        except PyMongoError as e:
            logger.warning(f"MongoDB ping failed: {e}")
            return False

    async def close(self) -> None:
        if self.client is not None:
            await self.client.close()
