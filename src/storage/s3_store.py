from __future__ import annotations

import asyncio
import logging
from typing import Any, Optional
from urllib.parse import quote

import boto3
from botocore.config import Config
from botocore.exceptions import (
    BotoCoreError,
    ClientError,
    ConnectionClosedError,
    ConnectTimeoutError,
    EndpointConnectionError,
    ReadTimeoutError,
)

from src.pipeline.errors import UploadError
from src.storage.client import ObjectStore
from src.utils.retry import retry_with_backoff


logger = logging.getLogger(__name__)


TRANSIENT_ERROR_CODES = {
    "Throttling",
    "ThrottlingException",
    "SlowDown",
    "RequestTimeout",
    "RequestTimeTooSkewed",
    "InternalError",
    "ServiceUnavailable",
}


def is_transient_s3_error(error: BaseException) -> bool:
    if isinstance(error, (EndpointConnectionError, ConnectionClosedError, ReadTimeoutError, ConnectTimeoutError)):
        return True
    if isinstance(error, ClientError):
        code = error.response.get("Error", {}).get("Code", "")
        status = error.response.get("ResponseMetadata", {}).get("HTTPStatusCode", 0)
        return code in TRANSIENT_ERROR_CODES or status >= 500
    return False


class S3ObjectStore(ObjectStore):
    """
    Uploads objects to an S3 bucket (or an S3-compatible endpoint).

    The retry policy is explicit: botocore's built-in retries are switched
    off and `max_retries` transient failures are retried with backoff.
    """

    def __init__(
        self,
        bucket: str,
        region: str,
        access_key_id: Optional[str] = None,
        secret_access_key: Optional[str] = None,
        endpoint_url: Optional[str] = None,
        public_base_url: Optional[str] = None,
        max_retries: int = 0,
        retry_base_delay: float = 0.5,
        retry_max_delay: float = 8.0,
        client: Any = None,
    ):
        if not bucket:
            raise ValueError("AWS_S3_BUCKET_NAME is not set")

        self.bucket = bucket
        self.region = region
        self.endpoint_url = endpoint_url or None
        self.public_base_url = (public_base_url or "").rstrip("/") or None
        self.max_retries = max_retries
        self.retry_base_delay = retry_base_delay
        self.retry_max_delay = retry_max_delay

        if client is None:
            session = boto3.session.Session(
                aws_access_key_id=access_key_id or None,
                aws_secret_access_key=secret_access_key or None,
            )
            config = Config(
                region_name=region,
                retries={"total_max_attempts": 1, "mode": "standard"},
            )
            client = session.client("s3", endpoint_url=self.endpoint_url, config=config)
        self.client = client

        logger.info(f"Initialized S3 object store: bucket={bucket}, region={region}, max_retries={max_retries}")

    def location_for(self, key: str) -> str:
        quoted = quote(key, safe="/")
        if self.public_base_url:
            return f"{self.public_base_url}/{quoted}"
        if self.endpoint_url:
            return f"{self.endpoint_url.rstrip('/')}/{self.bucket}/{quoted}"
        return f"https://{self.bucket}.s3.{self.region}.amazonaws.com/{quoted}"

    async def upload(self, data: bytes, key: str, content_type: str) -> str:
        """
        Upload bytes to the bucket.

        Returns:
            Public location of the stored object

        Raises:
            UploadError: If the object store rejects the upload
        """
        def sync_call():
            return self.client.put_object(
                Bucket=self.bucket,
                Key=key,
                Body=data,
                ContentType=content_type,
            )

        try:
            await retry_with_backoff(
                lambda: asyncio.to_thread(sync_call),
                max_retries=self.max_retries,
                base_delay=self.retry_base_delay,
                max_delay=self.retry_max_delay,
                is_retryable=is_transient_s3_error,
            )
        except (ClientError, BotoCoreError) as e:
            logger.error(f"S3 upload failed for key '{key}': {e}")
            raise UploadError(f"S3 upload failed for '{key}'.", cause=e) from e

        location = self.location_for(key)
        logger.info(f"Uploaded {len(data)} bytes to {location}")
        return location
