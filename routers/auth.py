from fastapi import APIRouter, Request, Depends
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from core.auth import (
    get_identity_from_request,
    identity_to_user,
    ensure_user_profile,
    get_user_profile,
    revoke_sessions,
)
from core.config import logger
from core.database import get_db

router = APIRouter(prefix="/api/auth", tags=["auth"])


def _session_payload(db: Session, identity: dict, create: bool) -> dict:
    profile = None
    profile_error = None
    try:
        if create:
            ensure_user_profile(db, identity)
        profile = get_user_profile(db, identity["uid"])
    except Exception as ex:
        db.rollback()
        profile_error = str(ex)
        logger.error(f"Error cargando perfil: {ex}")
    return {"user": identity_to_user(identity), "profile": profile, "profileError": profile_error}


@router.post("/session")
async def login(request: Request, db: Session = Depends(get_db)):
    """Called right after the federated sign-in completes on the client.
    Verifies the ID token, makes sure a profile exists and returns it."""
    identity = get_identity_from_request(request)
    if not identity:
        logger.error("Error en login: invalid or missing ID token")
        return JSONResponse({"error": "unauthorized", "details": "Error al iniciar sesión"}, status_code=401)

    logger.info(f"Usuario autenticado: {identity.get('email') or identity['uid']}")
    return _session_payload(db, identity, create=True)


@router.get("/session")
async def current_session(request: Request, db: Session = Depends(get_db)):
    identity = get_identity_from_request(request)
    if not identity:
        return {"user": None, "profile": None, "profileError": None}
    return _session_payload(db, identity, create=True)


@router.get("/profile")
async def refresh_profile(request: Request, db: Session = Depends(get_db)):
    identity = get_identity_from_request(request)
    if not identity:
        return JSONResponse({"error": "unauthorized"}, status_code=401)
    profile = get_user_profile(db, identity["uid"])
    if profile is None:
        return JSONResponse({"error": "not_found", "details": "Profile not created yet"}, status_code=404)
    return {"profile": profile}


@router.post("/logout")
async def logout(request: Request):
    identity = get_identity_from_request(request)
    if identity:
        if revoke_sessions(identity["uid"]):
            logger.info("Sesión cerrada")
        else:
            logger.warning(f"Error al cerrar sesión para {identity['uid']}")
    return {"ok": True}
