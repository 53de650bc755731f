from fastapi import APIRouter, HTTPException, Request, Depends
from fastapi.responses import JSONResponse
from pydantic import BaseModel
from typing import Optional
from sqlalchemy.orm import Session

from core.auth import get_identity_from_request, get_uid_from_request, ensure_user_profile
from core.config import FRONTEND_ORIGIN, logger
from core.diagnostics import SUCCESS
from core.database import get_db
from models.shop import Shop
from models.product import Product
from utils.contact import INTENTS, INTENT_INQUIRY, build_message, build_whatsapp_link, wallet_link
from utils.themes import is_known_theme, list_themes
from utils.validation import (
    validate_shop_name,
    validate_cbu,
    normalize_whatsapp,
    normalize_alias,
    normalize_cbu,
    generate_shop_id,
)
from routers.products import load_catalog

router = APIRouter(prefix="/api", tags=["shop"])


# --- Request Schemas (Pydantic) ---
class CreateShopPayload(BaseModel):
    name: str
    description: str = ""
    whatsapp: str = ""
    location: str = ""
    alias: str = ""
    cbu: str = ""

class UpdateShopPayload(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None
    whatsapp: Optional[str] = None
    location: Optional[str] = None
    alias: Optional[str] = None
    cbu: Optional[str] = None

class ThemePayload(BaseModel):
    theme: str


def share_url(shop_id: str) -> str:
    return f"{FRONTEND_ORIGIN}/shop/{shop_id}"


def _field_errors(name: Optional[str], cbu: Optional[str]) -> Optional[JSONResponse]:
    if name is not None:
        ok, err = validate_shop_name(name)
        if not ok:
            return JSONResponse({"error": "invalid_name", "details": err}, status_code=400)
    if cbu is not None:
        ok, err = validate_cbu(cbu)
        if not ok:
            return JSONResponse({"error": "invalid_cbu", "details": err}, status_code=400)
    return None


def _get_shop(db: Session, shop_id: str) -> Shop:
    shop = db.query(Shop).filter(Shop.id == (shop_id or "").strip()).first()
    if not shop:
        raise HTTPException(status_code=404, detail="Shop not found")
    return shop


def _owned_shop(request: Request, db: Session, shop_id: str) -> Shop:
    uid = get_uid_from_request(request)
    if not uid:
        raise HTTPException(status_code=401, detail="Unauthorized")
    shop = _get_shop(db, shop_id)
    if shop.owner_id != uid:
        raise HTTPException(status_code=403, detail="Forbidden")
    return shop


@router.post("/shops")
async def create_shop(request: Request, payload: CreateShopPayload, db: Session = Depends(get_db)):
    """Create the caller's shop and link it to their profile."""
    identity = get_identity_from_request(request)
    if not identity:
        return JSONResponse({"error": "unauthorized"}, status_code=401)

    invalid = _field_errors(payload.name, payload.cbu)
    if invalid is not None:
        return invalid

    try:
        user = ensure_user_profile(db, identity)
        if user.shop_id and db.query(Shop).filter(Shop.id == user.shop_id).first():
            return JSONResponse({"error": "shop_exists", "details": "Ya tienes una tienda", "shopId": user.shop_id}, status_code=409)

        shop_id = generate_shop_id(payload.name)
        while db.query(Shop).filter(Shop.id == shop_id).first():
            shop_id = generate_shop_id(payload.name)

        logger.info("Creando tienda...")
        shop = Shop(
            id=shop_id,
            owner_id=user.uid,
            name=payload.name.strip(),
            description=(payload.description or "").strip(),
            whatsapp=normalize_whatsapp(payload.whatsapp),
            location=(payload.location or "").strip(),
            alias=normalize_alias(payload.alias),
            cbu=normalize_cbu(payload.cbu),
            active=True,
        )
        db.add(shop)
        # Shop record and profile link are committed together
        user.shop_id = shop_id
        db.commit()
        db.refresh(shop)
    except Exception as ex:
        db.rollback()
        logger.error(f"Error creando tienda: {ex}")
        return JSONResponse({"error": "create_failed", "details": str(ex)}, status_code=500)

    logger.info(f"Tienda creada con éxito: {shop_id}", extra=SUCCESS)
    return {"success": True, "shopId": shop_id, "shop": shop.to_dict(), "shareUrl": share_url(shop_id)}


@router.get("/shops/{shop_id}")
async def get_shop(shop_id: str, db: Session = Depends(get_db)):
    """Public shop data (no authentication)."""
    shop = _get_shop(db, shop_id)
    return {"shop": shop.to_dict(), "shareUrl": share_url(shop.id)}


@router.patch("/shops/{shop_id}")
async def update_shop(shop_id: str, request: Request, payload: UpdateShopPayload, db: Session = Depends(get_db)):
    shop = _owned_shop(request, db, shop_id)

    invalid = _field_errors(payload.name, payload.cbu)
    if invalid is not None:
        return invalid

    try:
        if payload.name is not None:
            shop.name = payload.name.strip()
        if payload.description is not None:
            shop.description = payload.description.strip()
        if payload.whatsapp is not None:
            shop.whatsapp = normalize_whatsapp(payload.whatsapp)
        if payload.location is not None:
            shop.location = payload.location.strip()
        if payload.alias is not None:
            shop.alias = normalize_alias(payload.alias)
        if payload.cbu is not None:
            shop.cbu = normalize_cbu(payload.cbu)
        db.commit()
        db.refresh(shop)
    except Exception as ex:
        db.rollback()
        logger.error(f"Error actualizando tienda {shop_id}: {ex}")
        return JSONResponse({"error": "update_failed", "details": str(ex)}, status_code=500)

    return {"success": True, "shop": shop.to_dict()}


@router.patch("/shops/{shop_id}/theme")
async def update_shop_theme(shop_id: str, request: Request, payload: ThemePayload, db: Session = Depends(get_db)):
    """Partial update: only the visual preset changes."""
    shop = _owned_shop(request, db, shop_id)
    key = (payload.theme or "").strip().lower()
    if not is_known_theme(key):
        return JSONResponse({"error": "invalid_theme", "details": f"Unknown theme: {payload.theme}"}, status_code=400)
    try:
        shop.theme = key
        db.commit()
        db.refresh(shop)
    except Exception as ex:
        db.rollback()
        logger.error(f"Error guardando tema de {shop_id}: {ex}")
        return JSONResponse({"error": "update_failed", "details": str(ex)}, status_code=500)
    logger.info(f"Tema actualizado: {shop_id} -> {key}")
    return {"success": True, "theme": key, "shop": shop.to_dict()}


@router.get("/themes")
async def get_themes():
    return {"themes": list_themes()}


@router.get("/me/shop")
async def owner_home(request: Request, db: Session = Depends(get_db)):
    """Owner route: create-shop flow when the profile has no shop, dashboard otherwise."""
    identity = get_identity_from_request(request)
    if not identity:
        return JSONResponse({"error": "unauthorized"}, status_code=401)

    user = ensure_user_profile(db, identity)
    shop = db.query(Shop).filter(Shop.id == user.shop_id).first() if user.shop_id else None
    if not shop:
        return {"view": "create_shop", "profile": user.to_dict()}

    products = await load_catalog(db, shop.id, is_owner=True)
    return {
        "view": "dashboard",
        "profile": user.to_dict(),
        "shop": shop.to_dict(),
        "products": products,
        "shareUrl": share_url(shop.id),
    }


@router.get("/shops/{shop_id}/contact")
async def contact_link(
    shop_id: str,
    productId: Optional[str] = None,
    intent: str = INTENT_INQUIRY,
    db: Session = Depends(get_db),
):
    """WhatsApp deep link with a pre-filled message for the seller."""
    if intent not in INTENTS:
        return JSONResponse({"error": "invalid_intent", "details": f"intent must be one of {', '.join(INTENTS)}"}, status_code=400)
    shop = _get_shop(db, shop_id)
    if not shop.whatsapp:
        return JSONResponse({"error": "no_contact", "details": "La tienda no tiene WhatsApp configurado"}, status_code=400)

    title = None
    price = None
    if productId:
        product = db.query(Product).filter(Product.id == productId, Product.shop_id == shop.id).first()
        if not product:
            raise HTTPException(status_code=404, detail="Product not found")
        title, price = product.title, product.price
        logger.info(f"Click en comprar para {product.title}")

    message = build_message(intent, shop.name, title=title, price=price)
    return {"url": build_whatsapp_link(shop.whatsapp, message), "message": message}


@router.get("/shops/{shop_id}/payment")
async def payment_info(shop_id: str, request: Request, db: Session = Depends(get_db)):
    """Manual bank transfer details plus the wallet app link for the caller's platform."""
    shop = _get_shop(db, shop_id)
    url, mobile = wallet_link(request.headers.get("user-agent"))
    return {
        "alias": shop.alias or "",
        "cbu": shop.cbu or "",
        "walletUrl": url,
        "isMobile": mobile,
    }
