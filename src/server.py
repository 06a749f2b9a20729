from __future__ import annotations

import logging
import os
import sys
from typing import List, Optional
from datetime import datetime

from fastapi import FastAPI, File, Form, UploadFile
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles
from fastapi.responses import FileResponse, JSONResponse

from src.config.settings import settings
from src.pipeline.components import ServiceComponents, build_components
from src.pipeline.errors import ImageServiceError
from src.schema.input_schema import ImageFile, UploadRequest
from src.schema.output_schema import ErrorResponse, ProductRecord, UploadResponse


logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)

PUBLIC_DIR = os.path.join(os.path.dirname(os.path.dirname(__file__)), "public")


def error_response(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=ErrorResponse(error=message).model_dump())


def create_app(components: Optional[ServiceComponents] = None) -> FastAPI:
    """
    Build the HTTP application.

    When `components` is given they are used as-is, otherwise they are built
    from environment settings at startup.
    """
    app = FastAPI(
        title="Product Image Watermark API",
        description="Watermarks product images, stores them in S3 and records their URLs",
        version="1.0.0"
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    if os.path.isdir(PUBLIC_DIR):
        app.mount("/static", StaticFiles(directory=PUBLIC_DIR), name="static")
        logger.info(f"Static files mounted from: {PUBLIC_DIR}")

    app.state.components = components

    @app.on_event("startup")
    async def startup_event():
        if app.state.components is not None:
            return

        logger.info("Initializing pipeline components...")

        if not settings.AWS_S3_BUCKET_NAME:
            logger.error("AWS_S3_BUCKET_NAME is not set. Please set the environment variable.")
            sys.exit(1)

        app.state.components = build_components(settings)
        await app.state.components.product_store.ensure_indexes()

        logger.info("Pipeline initialized successfully")

    @app.on_event("shutdown")
    async def shutdown_event():
        if app.state.components is not None:
            await app.state.components.product_store.close()

    @app.get("/reza")
    async def upload_form():
        """Serve the static upload form."""
        return FileResponse(os.path.join(PUBLIC_DIR, "index.html"))

    @app.post("/api/images/upload", status_code=201, response_model=UploadResponse)
    async def upload_images(
        productName: Optional[str] = Form(None),
        images: Optional[List[UploadFile]] = File(None),
    ):
        """
        Watermark the uploaded images, store them and append their URLs to the product.

        Returns:
            201 with the updated product record, 400 on missing input,
            500 on render/upload/persist failure, 504 on timeout
        """
        components: ServiceComponents = app.state.components
        if components is None:
            return error_response(500, "Pipeline not initialized")

        max_images = components.processor.max_images
        files = []
        for index, upload in enumerate(images or []):
            if len(files) >= max_images:
                logger.warning(
                    f"Product {productName}: ignoring {len(images) - index} file(s) beyond the "
                    f"{max_images} image limit"
                )
                break
            data = await upload.read()
            # Browsers send an empty part when no file was chosen
            if not upload.filename and not data:
                continue
            files.append(ImageFile(
                filename=upload.filename or "image",
                content_type=upload.content_type or "application/octet-stream",
                data=data,
            ))

        request = UploadRequest(product_name=productName or "", images=files)

        try:
            product = await components.processor.process_upload(request)
        except ImageServiceError as e:
            return error_response(e.status_code, e.message)
        except Exception as e:
            logger.exception(f"Unexpected error in /api/images/upload: {e}")
            return error_response(500, "Failed to upload and save images. Check server logs for details.")

        return UploadResponse(
            message="Images uploaded and saved successfully!",
            product=product,
        )

    @app.get("/api/images/{product_name}", response_model=ProductRecord)
    async def get_images(product_name: str):
        """Return the accumulated image URLs for a product."""
        components: ServiceComponents = app.state.components
        if components is None:
            return error_response(500, "Pipeline not initialized")

        try:
            return await components.product_store.get_by_name(product_name)
        except ImageServiceError as e:
            if e.status_code >= 500:
                logger.error(f"Error fetching images: {e.message}")
            return error_response(e.status_code, e.message)
        except Exception as e:
            logger.exception(f"Error fetching images: {e}")
            return error_response(500, "Failed to fetch images")

    @app.get("/")
    async def root():
        return {
            "message": "Product Image Watermark API",
            "version": "1.0.0",
            "docs": "/docs",
            "health": "/health",
            "upload_form": "/reza"
        }

    @app.get("/health")
    async def health():
        """
        Health check endpoint with system status.

        Returns:
            System health status, configuration, and component states
        """
        components: ServiceComponents = app.state.components
        store_reachable = await components.product_store.ping() if components is not None else False

        return {
            "status": "healthy" if store_reachable else "degraded",
            "timestamp": datetime.utcnow().isoformat() + "Z",
            "version": "1.0.0",
            "components": {
                "api": "operational",
                "pipeline_initialized": components is not None,
                "record_store_reachable": store_reachable,
                "bucket_configured": bool(settings.AWS_S3_BUCKET_NAME),
            },
            "limits": {
                "max_images_per_upload": settings.MAX_IMAGES_PER_UPLOAD,
                "upload_max_retries": settings.UPLOAD_MAX_RETRIES,
                "request_timeout_seconds": settings.REQUEST_TIMEOUT,
            }
        }

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host=settings.HOST, port=settings.PORT)
