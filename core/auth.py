import os
import json
from typing import Optional, Dict, Any
from fastapi import Request
from sqlalchemy.orm import Session

from core.config import logger
from core.diagnostics import current_uid
from models.user import User


firebase_enabled = False
try:
    import firebase_admin
    from firebase_admin import auth as fb_auth, credentials as fb_credentials

    FIREBASE_PROJECT_ID = os.getenv("FIREBASE_PROJECT_ID", "")
    FIREBASE_SERVICE_ACCOUNT_JSON = os.getenv("FIREBASE_SERVICE_ACCOUNT_JSON", "")
    FIREBASE_SERVICE_ACCOUNT_JSON_PATH = (os.getenv("FIREBASE_SERVICE_ACCOUNT_JSON_PATH", "") or "").strip().strip('"').strip("'")

    if not getattr(firebase_admin, "_apps", []):
        options = {"projectId": FIREBASE_PROJECT_ID} if FIREBASE_PROJECT_ID else None
        if FIREBASE_SERVICE_ACCOUNT_JSON:
            cred = fb_credentials.Certificate(json.loads(FIREBASE_SERVICE_ACCOUNT_JSON))
            firebase_admin.initialize_app(cred, options)
        elif FIREBASE_SERVICE_ACCOUNT_JSON_PATH and os.path.isfile(FIREBASE_SERVICE_ACCOUNT_JSON_PATH):
            cred = fb_credentials.Certificate(FIREBASE_SERVICE_ACCOUNT_JSON_PATH)
            firebase_admin.initialize_app(cred, options)
        else:
            firebase_admin.initialize_app(options=options)
    firebase_enabled = True
    logger.info("Firebase Admin initialized")
except Exception as ex:
    logger.warning(f"Firebase Admin not initialized: {ex}")
    fb_auth = None  # type: ignore


def _bearer_token(request: Request) -> Optional[str]:
    auth_header = request.headers.get("authorization") or request.headers.get("Authorization")
    if not auth_header or not auth_header.lower().startswith("bearer "):
        return None
    token = auth_header.split(" ", 1)[1].strip()
    return token or None


def get_identity_from_request(request: Request) -> Optional[Dict[str, Any]]:
    """Decoded Firebase ID token claims for the caller, or None when anonymous/invalid."""
    token = _bearer_token(request)
    if not token:
        return None
    if not firebase_enabled or not fb_auth:
        return None
    try:
        decoded = fb_auth.verify_id_token(token)
    except Exception as ex:
        logger.warning(f"Token verification failed: {ex}")
        return None
    if not decoded or not decoded.get("uid"):
        return None
    # Tag this request's log records for the caller's diagnostic view
    current_uid.set(decoded["uid"])
    return decoded


def get_uid_from_request(request: Request) -> Optional[str]:
    identity = get_identity_from_request(request)
    return identity.get("uid") if identity else None


def identity_to_user(identity: Dict[str, Any]) -> Dict[str, Any]:
    """Public view of the federated identity (what the client calls `user`)."""
    return {
        "uid": identity.get("uid"),
        "email": identity.get("email"),
        "displayName": identity.get("name"),
        "photoURL": identity.get("picture"),
    }


def ensure_user_profile(db: Session, identity: Dict[str, Any]) -> User:
    """Create the profile record on first login. Existing records are never overwritten."""
    uid = identity["uid"]
    user = db.query(User).filter(User.uid == uid).first()
    if user:
        return user
    user = User(
        uid=uid,
        email=identity.get("email"),
        display_name=identity.get("name"),
        photo_url=identity.get("picture"),
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    logger.info(f"Profile created for {uid}")
    return user


def get_user_profile(db: Session, uid: str) -> Optional[Dict[str, Any]]:
    user = db.query(User).filter(User.uid == uid).first()
    return user.to_dict() if user else None


def revoke_sessions(uid: str) -> bool:
    """Invalidate refresh tokens for a user. Failures are logged, never raised."""
    try:
        if not firebase_enabled or not fb_auth:
            return False
        fb_auth.revoke_refresh_tokens(uid)
        return True
    except Exception as ex:
        logger.warning(f"revoke_sessions failed for {uid}: {ex}")
        return False
