from __future__ import annotations

from typing import Optional

from src.schema.enums import UploadStage


class ImageServiceError(Exception):
    """Base error carrying the HTTP status and the message shown to clients."""

    status_code: int = 500
    # Upload stage this error ends the request in, None outside uploads
    stage: Optional[str] = None

    def __init__(self, message: str, cause: Optional[BaseException] = None):
        super().__init__(message)
        self.message = message
        self.cause = cause


class ValidationError(ImageServiceError):
    status_code = 400
    stage = UploadStage.validating.value


class RenderError(ImageServiceError):
    status_code = 500
    stage = UploadStage.processing.value


class UploadError(ImageServiceError):
    status_code = 500
    stage = UploadStage.uploading.value


class PersistenceError(ImageServiceError):
    status_code = 500
    stage = UploadStage.persisting.value


class NotFoundError(ImageServiceError):
    status_code = 404


class StageTimeoutError(ImageServiceError):
    status_code = 504

    def __init__(self, stage: str, timeout: float):
        super().__init__(f"{stage} stage exceeded timeout of {timeout}s")
        self.stage = stage
        self.timeout = timeout
