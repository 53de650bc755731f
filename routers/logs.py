from fastapi import APIRouter, Request, Depends
from fastapi.responses import JSONResponse, PlainTextResponse

from core.auth import get_uid_from_request
from core.diagnostics import DiagnosticBuffer, get_diagnostics

router = APIRouter(prefix="/api/logs", tags=["logs"])

# Every route only sees the caller's own entries


@router.get("")
async def list_logs(request: Request, diagnostics: DiagnosticBuffer = Depends(get_diagnostics)):
    uid = get_uid_from_request(request)
    if not uid:
        return JSONResponse({"error": "unauthorized"}, status_code=401)
    return {"logs": diagnostics.entries(uid), "capacity": diagnostics.capacity}


@router.get("/export")
async def export_logs(request: Request, diagnostics: DiagnosticBuffer = Depends(get_diagnostics)):
    uid = get_uid_from_request(request)
    if not uid:
        return JSONResponse({"error": "unauthorized"}, status_code=401)
    return PlainTextResponse(diagnostics.export_text(uid))


@router.delete("")
async def clear_logs(request: Request, diagnostics: DiagnosticBuffer = Depends(get_diagnostics)):
    uid = get_uid_from_request(request)
    if not uid:
        return JSONResponse({"error": "unauthorized"}, status_code=401)
    diagnostics.clear(uid)
    return {"ok": True}
