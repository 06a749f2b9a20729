from __future__ import annotations

import logging
import os
from dataclasses import dataclass

from src.config.settings import Settings
from src.pipeline.processor import ProductUploadProcessor
from src.records.store import InMemoryProductStore, ProductStore
from src.schema.enums import RecordStoreBackend
from src.storage.s3_store import S3ObjectStore
from src.watermark.renderer import WatermarkRenderer
from src.watermark.template import WatermarkTemplate


logger = logging.getLogger(__name__)


@dataclass
class ServiceComponents:
    processor: ProductUploadProcessor
    product_store: ProductStore


def load_watermark_template(config: Settings) -> WatermarkTemplate:
    """Read the overlay template once at startup; defaults apply when the file is absent."""
    data = b""
    if config.WATERMARK_TEMPLATE_PATH and os.path.exists(config.WATERMARK_TEMPLATE_PATH):
        with open(config.WATERMARK_TEMPLATE_PATH, "rb") as f:
            data = f.read()
        logger.info(f"Watermark template loaded from: {config.WATERMARK_TEMPLATE_PATH}")
    else:
        logger.warning(f"Watermark template not found at {config.WATERMARK_TEMPLATE_PATH}, using defaults")

    return WatermarkTemplate.from_bytes(
        data,
        font_path=config.WATERMARK_FONT_PATH or None,
        jpeg_quality=config.JPEG_QUALITY,
    )


def build_product_store(config: Settings) -> ProductStore:
    backend = RecordStoreBackend(config.RECORD_STORE)
    if backend is RecordStoreBackend.memory:
        logger.warning("Using in-memory record store; records are lost on restart")
        return InMemoryProductStore()

    from src.records.mongo_store import MongoProductStore
    return MongoProductStore(
        uri=config.MONGO_URI,
        db_name=config.MONGO_DB_NAME,
        collection_name=config.MONGO_COLLECTION,
    )


def build_components(config: Settings) -> ServiceComponents:
    renderer = WatermarkRenderer(load_watermark_template(config))
    object_store = S3ObjectStore(
        bucket=config.AWS_S3_BUCKET_NAME,
        region=config.AWS_REGION,
        access_key_id=config.AWS_ACCESS_KEY_ID,
        secret_access_key=config.AWS_SECRET_ACCESS_KEY,
        endpoint_url=config.S3_ENDPOINT_URL,
        public_base_url=config.S3_PUBLIC_BASE_URL,
        max_retries=config.UPLOAD_MAX_RETRIES,
        retry_base_delay=config.UPLOAD_RETRY_BASE_DELAY,
        retry_max_delay=config.UPLOAD_RETRY_MAX_DELAY,
    )
    product_store = build_product_store(config)
    processor = ProductUploadProcessor(
        renderer,
        object_store,
        product_store,
        key_prefix=config.S3_KEY_PREFIX,
        max_images=config.MAX_IMAGES_PER_UPLOAD,
        render_timeout=config.RENDER_TIMEOUT,
        upload_timeout=config.UPLOAD_TIMEOUT,
        persist_timeout=config.PERSIST_TIMEOUT,
        request_timeout=config.REQUEST_TIMEOUT,
    )
    return ServiceComponents(processor=processor, product_store=product_store)
