from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from core.auth import get_uid_from_request
from core.config import UPLOAD_URL_TTL_SEC, logger
from utils.rate_limit import check_upload_rate_limit
from utils.storage import mint_object_key, presign_upload_url, resolve_image_url, StorageConfigError

router = APIRouter(prefix="/api/storage", tags=["storage"])


class UploadUrlPayload(BaseModel):
    filename: str
    contentType: str = "application/octet-stream"


@router.post("/upload-url")
async def create_upload_url(request: Request, payload: UploadUrlPayload):
    """Mint a storage key and a 10 minute signed PUT URL so the browser can send bytes directly."""
    uid = get_uid_from_request(request)
    if not uid:
        return JSONResponse({"error": "unauthorized"}, status_code=401)

    allowed, rate_err = check_upload_rate_limit(uid)
    if not allowed:
        return JSONResponse({"error": "rate_limited", "details": rate_err}, status_code=429)

    key = mint_object_key(payload.filename)
    try:
        url = presign_upload_url(key, content_type=payload.contentType or "application/octet-stream")
    except StorageConfigError as ex:
        logger.error(f"upload-url: {ex}")
        return JSONResponse({"error": "storage_not_configured", "details": str(ex)}, status_code=500)
    except Exception as ex:
        logger.error(f"upload-url presign failed for {key}: {ex}")
        return JSONResponse({"error": "presign_failed", "details": str(ex)}, status_code=500)

    return {"key": key, "uploadUrl": url, "expiresIn": UPLOAD_URL_TTL_SEC, "contentType": payload.contentType}


@router.get("/url")
async def display_url(request: Request, key: str):
    if not get_uid_from_request(request):
        return JSONResponse({"error": "unauthorized"}, status_code=401)
    url = resolve_image_url(key)
    if not url:
        return JSONResponse({"error": "not_resolvable", "details": f"Could not resolve {key}"}, status_code=404)
    return {"url": url}
