from __future__ import annotations

import asyncio
import logging
import time
from typing import List

from src.config.settings import MAX_BATCH_SIZE
from src.pipeline.errors import ImageServiceError, StageTimeoutError, ValidationError
from src.records.store import ProductStore
from src.schema.enums import UploadStage
from src.schema.input_schema import ImageFile, UploadRequest
from src.schema.output_schema import ProductRecord
from src.storage.client import ObjectStore, build_object_key
from src.watermark.renderer import WatermarkRenderer


logger = logging.getLogger(__name__)


WATERMARKED_CONTENT_TYPE = "image/jpeg"

_STAGE_VALUES = {stage.value for stage in UploadStage}

_STAGE_ORDER = [
    UploadStage.validating,
    UploadStage.processing,
    UploadStage.uploading,
    UploadStage.persisting,
    UploadStage.done,
]


class UploadProgress:
    """Stage of one upload request. Only moves forward, `error` is terminal."""

    def __init__(self, product_name: str):
        self.product_name = product_name
        self.stage = UploadStage.validating

    def advance(self, stage: UploadStage) -> None:
        if self.stage is UploadStage.error:
            return
        if _STAGE_ORDER.index(stage) <= _STAGE_ORDER.index(self.stage):
            return
        logger.info(f"Stage transition: product_name={self.product_name}, {self.stage.value} -> {stage.value}")
        self.stage = stage

    def fail(self, error: ImageServiceError) -> None:
        # Timeouts of the whole request carry no stage of their own
        failed_stage = error.stage if error.stage in _STAGE_VALUES else self.stage.value
        logger.error(
            f"Upload failed at stage={failed_stage} ({type(error).__name__}): {error.message}; "
            f"product_name={self.product_name}, {self.stage.value} -> {UploadStage.error.value}"
        )
        self.stage = UploadStage.error


class ProductUploadProcessor:
    """
    Sequences validate -> render -> upload -> persist for one batch of images.

    Batches are all-or-nothing: the first failing render or upload fails the
    request and none of the batch's locations are persisted. Objects already
    uploaded by sibling files stay in the bucket unreferenced.
    """

    def __init__(
        self,
        renderer: WatermarkRenderer,
        object_store: ObjectStore,
        product_store: ProductStore,
        key_prefix: str = "products",
        max_images: int = MAX_BATCH_SIZE,
        render_timeout: float = 20.0,
        upload_timeout: float = 30.0,
        persist_timeout: float = 10.0,
        request_timeout: float = 90.0,
    ):
        self.renderer = renderer
        self.object_store = object_store
        self.product_store = product_store
        self.key_prefix = key_prefix
        self.max_images = max(1, min(max_images, MAX_BATCH_SIZE))
        self.render_timeout = render_timeout
        self.upload_timeout = upload_timeout
        self.persist_timeout = persist_timeout
        self.request_timeout = request_timeout

    async def process_upload(self, request: UploadRequest) -> ProductRecord:
        """
        Watermark, upload and record every image in the request.

        Returns:
            The product record after the batch's locations were appended

        Raises:
            ImageServiceError: Subclass matching the failed stage
        """
        start_time = time.perf_counter()
        progress = UploadProgress((request.product_name or "").strip())

        try:
            images = self._validate(request)
            product_name = progress.product_name

            logger.info(f"Request received: product_name={product_name}, image_count={len(images)}")

            progress.advance(UploadStage.processing)
            try:
                record = await asyncio.wait_for(
                    self._run_batch(product_name, images, progress),
                    timeout=self.request_timeout,
                )
            except asyncio.TimeoutError:
                raise StageTimeoutError("request", self.request_timeout)

            progress.advance(UploadStage.done)
            logger.info(
                f"Request complete: product_name={product_name}, uploaded={len(images)}, "
                f"total_images={len(record.images)}, "
                f"total_time_ms={int((time.perf_counter() - start_time) * 1000)}"
            )
            return record

        except ImageServiceError as e:
            progress.fail(e)
            raise

    def _validate(self, request: UploadRequest) -> List[ImageFile]:
        if not request.product_name or not request.product_name.strip() or not request.images:
            logger.error("Validation error: Missing product name or files.")
            raise ValidationError("Product name and at least one image are required.")

        images = request.images[:self.max_images]
        if len(request.images) > self.max_images:
            logger.warning(
                f"Product {request.product_name}: Capped from {len(request.images)} to "
                f"{self.max_images} images"
            )

        empty = [image.filename for image in images if not image.data]
        if empty:
            raise ValidationError(f"Empty image file(s): {', '.join(empty)}")

        for image in images:
            if not image.content_type.startswith("image/"):
                logger.warning(
                    f"File {image.filename} declared as {image.content_type}, decoding it as an image anyway"
                )

        return images

    async def _run_batch(
        self,
        product_name: str,
        images: List[ImageFile],
        progress: UploadProgress,
    ) -> ProductRecord:
        # Single join point; gather keeps submission order in its results
        locations = await asyncio.gather(
            *[self._process_image(product_name, image, progress) for image in images]
        )

        logger.info(f"Upload stage complete for {product_name}: {len(locations)} objects stored")

        progress.advance(UploadStage.persisting)
        try:
            return await asyncio.wait_for(
                self.product_store.append_images(product_name, list(locations)),
                timeout=self.persist_timeout,
            )
        except asyncio.TimeoutError:
            logger.error(f"Persist timed out; {len(locations)} uploaded objects are unreferenced: {locations}")
            raise StageTimeoutError(UploadStage.persisting.value, self.persist_timeout)
        except ImageServiceError:
            logger.error(f"Persist failed; {len(locations)} uploaded objects are unreferenced: {locations}")
            raise

    async def _process_image(self, product_name: str, image: ImageFile, progress: UploadProgress) -> str:
        logger.debug(f"stage={UploadStage.processing.value} file={image.filename}")
        try:
            watermarked = await asyncio.wait_for(
                asyncio.to_thread(self.renderer.render, image.data, product_name),
                timeout=self.render_timeout,
            )
        except asyncio.TimeoutError:
            raise StageTimeoutError(UploadStage.processing.value, self.render_timeout)

        progress.advance(UploadStage.uploading)
        key = build_object_key(self.key_prefix, image.filename)
        try:
            return await asyncio.wait_for(
                self.object_store.upload(watermarked, key, WATERMARKED_CONTENT_TYPE),
                timeout=self.upload_timeout,
            )
        except asyncio.TimeoutError:
            raise StageTimeoutError(UploadStage.uploading.value, self.upload_timeout)
