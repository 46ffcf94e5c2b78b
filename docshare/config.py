import os
from dataclasses import dataclass

from dotenv import load_dotenv

load_dotenv()


def _resolve_database_url() -> str:
    database_url = os.getenv("DATABASE_URL")
    if database_url:
        return database_url

    environment = os.getenv("ENVIRONMENT", "").strip().lower()
    if environment == "development":
        return "postgresql+psycopg://localhost:5434/docshare"

    raise ValueError(
        "DATABASE_URL is not set. Set DATABASE_URL for non-development "
        "environments or set ENVIRONMENT=development for local defaults."
    )


@dataclass(frozen=True)
class Settings:
    database_url: str = _resolve_database_url()
    db_pool_size: int = int(os.getenv("DB_POOL_SIZE", "5"))
    db_max_overflow: int = int(os.getenv("DB_MAX_OVERFLOW", "10"))
    db_pool_timeout: int = int(os.getenv("DB_POOL_TIMEOUT", "30"))
    db_pool_recycle: int = int(os.getenv("DB_POOL_RECYCLE", "1800"))

    # Logging
    log_level: str = os.getenv("LOG_LEVEL", "INFO")
    log_format: str = os.getenv("LOG_FORMAT", "plain")  # plain | kv

    # Uploads & previews
    upload_dir: str = os.getenv("UPLOAD_DIR", "uploads")
    max_upload_size_bytes: int = int(
        os.getenv("MAX_UPLOAD_SIZE_BYTES", str(200 * 1024 * 1024))
    )  # 200MB
    max_preview_size_bytes: int = int(
        os.getenv("MAX_PREVIEW_SIZE_BYTES", str(200 * 1024 * 1024))
    )
    preview_max_dimension: int = int(os.getenv("PREVIEW_MAX_DIMENSION", "800"))
    avatar_url_prefix: str = os.getenv("AVATAR_URL_PREFIX", "/static/avatars")

    # S3 / MinIO settings; local upload_dir is used when these are unset
    s3_endpoint_url: str = os.getenv("S3_ENDPOINT_URL", "")
    s3_access_key: str = os.getenv("S3_ACCESS_KEY", "")
    s3_secret_key: str = os.getenv("S3_SECRET_KEY", "")
    s3_bucket_name: str = os.getenv("S3_BUCKET_NAME", "docshare-documents")
    s3_region: str = os.getenv("S3_REGION", "us-east-1")

    # Celery
    celery_broker_url: str = os.getenv("CELERY_BROKER_URL", "redis://localhost:6379/0")
    celery_result_backend: str = os.getenv(
        "CELERY_RESULT_BACKEND", "redis://localhost:6379/1"
    )

    # Moderation
    admin_role_name: str = os.getenv("ADMIN_ROLE_NAME", "admin")
    notification_list_limit: int = int(os.getenv("NOTIFICATION_LIST_LIMIT", "50"))

    # Branding
    brand_name: str = os.getenv("BRAND_NAME", "DocShare")


settings = Settings()
