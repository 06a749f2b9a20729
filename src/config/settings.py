import os

from dotenv import load_dotenv


load_dotenv()

# Fixed upper bound on files per upload request
MAX_BATCH_SIZE = 10


def read_max_images() -> int:
    """MAX_IMAGES_PER_UPLOAD from the environment, clamped to 1..MAX_BATCH_SIZE."""
    value = int(os.getenv("MAX_IMAGES_PER_UPLOAD", str(MAX_BATCH_SIZE)))
    return max(1, min(value, MAX_BATCH_SIZE))


class Settings:
    """Application configuration settings."""

    # Server
    HOST: str = os.getenv("HOST", "0.0.0.0")
    PORT: int = int(os.getenv("PORT", "3000"))

    # Object store (S3 or S3-compatible)
    AWS_ACCESS_KEY_ID: str = os.getenv("AWS_ACCESS_KEY_ID", "")
    AWS_SECRET_ACCESS_KEY: str = os.getenv("AWS_SECRET_ACCESS_KEY", "")
    AWS_REGION: str = os.getenv("AWS_REGION", "us-east-1")
    AWS_S3_BUCKET_NAME: str = os.getenv("AWS_S3_BUCKET_NAME", "")
    S3_ENDPOINT_URL: str = os.getenv("S3_ENDPOINT_URL", "")
    S3_PUBLIC_BASE_URL: str = os.getenv("S3_PUBLIC_BASE_URL", "")
    S3_KEY_PREFIX: str = os.getenv("S3_KEY_PREFIX", "products")

    # Document store
    RECORD_STORE: str = os.getenv("RECORD_STORE", "mongo")  # "mongo" or "memory"
    MONGO_URI: str = os.getenv("MONGO_URI", "mongodb://localhost:27017")
    MONGO_DB_NAME: str = os.getenv("MONGO_DB_NAME", "products")
    MONGO_COLLECTION: str = os.getenv("MONGO_COLLECTION", "images")

    # Watermark
    WATERMARK_TEMPLATE_PATH: str = os.getenv("WATERMARK_TEMPLATE_PATH", "assets/watermark_template.json")
    WATERMARK_FONT_PATH: str = os.getenv("WATERMARK_FONT_PATH", "")
    JPEG_QUALITY: int = int(os.getenv("JPEG_QUALITY", "90"))

    # Limits
    MAX_IMAGES_PER_UPLOAD: int = read_max_images()

    # Timeouts (seconds)
    RENDER_TIMEOUT: float = float(os.getenv("RENDER_TIMEOUT", "20.0"))
    UPLOAD_TIMEOUT: float = float(os.getenv("UPLOAD_TIMEOUT", "30.0"))
    PERSIST_TIMEOUT: float = float(os.getenv("PERSIST_TIMEOUT", "10.0"))
    REQUEST_TIMEOUT: float = float(os.getenv("REQUEST_TIMEOUT", "90.0"))

    # Upload retry policy, 0 disables retries
    UPLOAD_MAX_RETRIES: int = int(os.getenv("UPLOAD_MAX_RETRIES", "0"))
    UPLOAD_RETRY_BASE_DELAY: float = float(os.getenv("UPLOAD_RETRY_BASE_DELAY", "0.5"))
    UPLOAD_RETRY_MAX_DELAY: float = float(os.getenv("UPLOAD_RETRY_MAX_DELAY", "8.0"))


settings = Settings()
