import os
import uuid
import re
from typing import Optional

import httpx

from core.config import (
    s3, R2_BUCKET, R2_PUBLIC_DOMAIN, UPLOAD_URL_TTL_SEC, DOWNLOAD_URL_TTL_SEC, logger,
)

CORS_HINT = (
    "Si el error dice 'Network Error' o 'Failed to fetch', es probable que falte "
    "configurar CORS en el bucket de almacenamiento."
)

DEFAULT_CORS_RULES = [
    {
        "AllowedOrigins": ["*"],
        "AllowedMethods": ["GET", "PUT", "POST", "DELETE", "HEAD"],
        "AllowedHeaders": ["*"],
        "ExposeHeaders": ["ETag"],
        "MaxAgeSeconds": 3000,
    }
]


class StorageConfigError(RuntimeError):
    """Raised when bucket credentials are missing."""


class StorageUploadError(RuntimeError):
    def __init__(self, status_code: int, reason: str = ""):
        self.status_code = status_code
        self.reason = reason
        super().__init__(f"Error en subida: {status_code} {reason}".strip())


def _client():
    if not s3 or not R2_BUCKET:
        raise StorageConfigError("Object storage is not configured (set R2_ENDPOINT, R2_BUCKET and R2 credentials)")
    return s3


def mint_object_key(filename: Optional[str]) -> str:
    """Random object key keeping only the original extension, e.g. '4f1c...e2.jpg'."""
    ext = os.path.splitext(os.path.basename(filename or ""))[1].lstrip(".").lower()
    if not ext or len(ext) > 8 or not re.fullmatch(r"[a-z0-9]+", ext):
        ext = "bin"
    return f"{uuid.uuid4()}.{ext}"


def presign_upload_url(key: str, content_type: str = "application/octet-stream", expires_in: int = UPLOAD_URL_TTL_SEC) -> str:
    return _client().generate_presigned_url(
        "put_object",
        Params={"Bucket": R2_BUCKET, "Key": key, "ContentType": content_type},
        ExpiresIn=int(expires_in),
    )


def presign_download_url(key: str, expires_in: int = DOWNLOAD_URL_TTL_SEC) -> str:
    return _client().generate_presigned_url(
        "get_object",
        Params={"Bucket": R2_BUCKET, "Key": key},
        ExpiresIn=int(expires_in),
    )


def is_absolute_url(value: str) -> bool:
    return (value or "").startswith("http")


def resolve_image_url(value: Optional[str]) -> Optional[str]:
    """Turn a stored image reference into something a browser can display.

    Absolute URLs (legacy or external sources) are returned verbatim. Storage keys use
    the public domain prefix when configured, otherwise a one-hour signed GET URL.
    """
    ref = (value or "").strip()
    if not ref:
        return None
    if is_absolute_url(ref):
        return ref
    if R2_PUBLIC_DOMAIN:
        return f"{R2_PUBLIC_DOMAIN}/{ref.lstrip('/')}"
    try:
        return presign_download_url(ref)
    except Exception as ex:
        logger.warning(f"signed url generation failed for {ref}: {ex}")
        return None


def _http_client() -> httpx.AsyncClient:
    return httpx.AsyncClient(timeout=60.0)


async def upload_file(data: bytes, filename: Optional[str], content_type: Optional[str] = None) -> str:
    """Upload raw bytes straight to the bucket through a short-lived signed PUT URL.

    Returns the new object key. Raises StorageUploadError on a non-2xx response.
    """
    ctype = content_type or "application/octet-stream"
    key = mint_object_key(filename)
    signed_url = presign_upload_url(key, content_type=ctype)

    async with _http_client() as client:
        r = await client.put(signed_url, content=data, headers={"Content-Type": ctype})
    if r.status_code < 200 or r.status_code >= 300:
        logger.error(f"upload to storage failed for {key}: {r.status_code} {r.reason_phrase}")
        raise StorageUploadError(r.status_code, r.reason_phrase or "")

    logger.info(f"Uploaded {len(data)} bytes -> {key}")
    return key


def cors_rules_for(origins: Optional[list] = None) -> list:
    """Bucket CORS rules allowing the given origins (any origin when none are given)."""
    allowed = [o.strip() for o in (origins or []) if o and o.strip()]
    rule = dict(DEFAULT_CORS_RULES[0])
    rule["AllowedOrigins"] = allowed or ["*"]
    return [rule]


def apply_bucket_cors(origins: Optional[list] = None) -> dict:
    """Apply browser CORS rules to the bucket so signed PUT/GET work cross-origin."""
    cors_rules = cors_rules_for(origins)
    _client().put_bucket_cors(Bucket=R2_BUCKET, CORSConfiguration={"CORSRules": cors_rules})
    logger.info(f"CORS applied to bucket {R2_BUCKET}")
    return {"bucket": R2_BUCKET, "rules": cors_rules}
