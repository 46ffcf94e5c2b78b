import logging
import os
import re
import uuid
from pathlib import Path

import boto3
from botocore.config import Config
from botocore.exceptions import ClientError

from docshare.config import settings

logger = logging.getLogger(__name__)

_UNSAFE_NAME_CHARS = re.compile(r"[^A-Za-z0-9._-]+")
_MISSING_KEY_CODES = {"404", "NoSuchKey", "NotFound"}


def _safe_file_name(file_name: str) -> str:
    base = os.path.basename(file_name or "").strip()
    cleaned = _UNSAFE_NAME_CHARS.sub("_", base).strip("._")
    return cleaned or "file"


class StorageService:
    """Opaque byte store for uploaded documents.

    Uses the S3/MinIO bucket when credentials are configured and a local
    directory otherwise. Missing objects surface as ``FileNotFoundError`` on
    both backends.
    """

    local_root: str = settings.upload_dir

    @staticmethod
    def is_configured() -> bool:
        return bool(
            settings.s3_endpoint_url
            and settings.s3_access_key
            and settings.s3_secret_key
        )

    @staticmethod
    def _get_client():  # type: ignore[return]
        if not StorageService.is_configured():
            raise RuntimeError(
                "S3 storage is not configured. "
                "Set S3_ENDPOINT_URL, S3_ACCESS_KEY, and S3_SECRET_KEY."
            )
        return boto3.client(
            "s3",
            endpoint_url=settings.s3_endpoint_url,
            aws_access_key_id=settings.s3_access_key,
            aws_secret_access_key=settings.s3_secret_key,
            region_name=settings.s3_region,
            config=Config(signature_version="s3v4"),
        )

    @staticmethod
    def generate_storage_key(file_name: str) -> str:
        unique = uuid.uuid4().hex
        return f"documents/{unique[:2]}/{unique}_{_safe_file_name(file_name)}"

    @classmethod
    def _local_path(cls, storage_key: str) -> Path:
        root = Path(cls.local_root).resolve()
        path = (root / storage_key).resolve()
        if root not in path.parents:
            raise FileNotFoundError(storage_key)
        return path

    @staticmethod
    def _is_missing(error: ClientError) -> bool:
        code = str(error.response.get("Error", {}).get("Code", ""))
        return code in _MISSING_KEY_CODES

    @classmethod
    def put(cls, storage_key: str, data: bytes, mime_type: str | None = None) -> None:
        if cls.is_configured():
            extra = {"ContentType": mime_type} if mime_type else {}
            cls._get_client().put_object(
                Bucket=settings.s3_bucket_name, Key=storage_key, Body=data, **extra
            )
        else:
            path = cls._local_path(storage_key)
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_bytes(data)
        logger.info("Stored %d bytes at %s", len(data), storage_key)

    @classmethod
    def get(cls, storage_key: str) -> bytes:
        if cls.is_configured():
            try:
                response = cls._get_client().get_object(
                    Bucket=settings.s3_bucket_name, Key=storage_key
                )
            except ClientError as exc:
                if cls._is_missing(exc):
                    raise FileNotFoundError(storage_key) from exc
                raise
            return response["Body"].read()
        return cls._local_path(storage_key).read_bytes()

    @classmethod
    def exists(cls, storage_key: str | None) -> bool:
        if not storage_key:
            return False
        if cls.is_configured():
            try:
                cls._get_client().head_object(
                    Bucket=settings.s3_bucket_name, Key=storage_key
                )
            except ClientError as exc:
                if cls._is_missing(exc):
                    return False
                raise
            return True
        try:
            return cls._local_path(storage_key).is_file()
        except FileNotFoundError:
            return False

    @classmethod
    def size(cls, storage_key: str) -> int:
        if cls.is_configured():
            try:
                head = cls._get_client().head_object(
                    Bucket=settings.s3_bucket_name, Key=storage_key
                )
            except ClientError as exc:
                if cls._is_missing(exc):
                    raise FileNotFoundError(storage_key) from exc
                raise
            return int(head.get("ContentLength", 0))
        return cls._local_path(storage_key).stat().st_size

    @classmethod
    def delete(cls, storage_key: str) -> None:
        if cls.is_configured():
            cls._get_client().delete_object(
                Bucket=settings.s3_bucket_name, Key=storage_key
            )
        else:
            cls._local_path(storage_key).unlink(missing_ok=True)
        logger.info("Deleted stored object %s", storage_key)


storage = StorageService()
