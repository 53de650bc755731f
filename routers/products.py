from fastapi import APIRouter, HTTPException, UploadFile, File, Form, Request, Depends
from fastapi.responses import JSONResponse
from pydantic import BaseModel
from typing import Optional, List, Tuple
from sqlalchemy.orm import Session
from datetime import datetime, timezone
import math
import uuid

from core.auth import get_uid_from_request
from core.config import MAX_IMAGES_PER_PRODUCT, MAX_IMAGE_SIZE, logger
from core.diagnostics import SUCCESS
from core.database import get_db
from models.shop import Shop
from models.product import Product, CONDITIONS, DEFAULT_CONDITION, STATUS_AVAILABLE
from utils.catalog import normalize_product_record, visible_products, attach_display_urls
from utils.rate_limit import check_upload_rate_limit
from utils.storage import upload_file, StorageConfigError, StorageUploadError, CORS_HINT

router = APIRouter(prefix="/api", tags=["products"])


class SoldPayload(BaseModel):
    confirmed: bool = False
    buyerInfo: Optional[str] = None


async def load_catalog(db: Session, shop_id: str, is_owner: bool) -> list[dict]:
    """All products of a shop as the viewer may see them, display URLs resolved."""
    rows = db.query(Product).filter(Product.shop_id == shop_id).order_by(Product.created_at.desc()).all()
    items = [normalize_product_record(p.to_dict()) for p in rows]
    return await attach_display_urls(visible_products(items, is_owner=is_owner))


def _owned_product(request: Request, db: Session, product_id: str) -> Tuple[Product, Shop]:
    uid = get_uid_from_request(request)
    if not uid:
        raise HTTPException(status_code=401, detail="Unauthorized")
    product = db.query(Product).filter(Product.id == product_id).first()
    if not product:
        raise HTTPException(status_code=404, detail="Product not found")
    shop = db.query(Shop).filter(Shop.id == product.shop_id).first()
    if not shop or shop.owner_id != uid:
        raise HTTPException(status_code=403, detail="Forbidden")
    return product, shop


def _check_fields(title: Optional[str], price: Optional[float], condition: Optional[str]) -> Optional[JSONResponse]:
    if title is not None and not title.strip():
        return JSONResponse({"error": "invalid_title", "details": "El título es obligatorio"}, status_code=400)
    if price is not None and not math.isfinite(price):
        return JSONResponse({"error": "invalid_price", "details": "El precio debe ser un número"}, status_code=400)
    if price is not None and price < 0:
        return JSONResponse({"error": "invalid_price", "details": "El precio no puede ser negativo"}, status_code=400)
    if condition is not None and condition not in CONDITIONS:
        return JSONResponse({"error": "invalid_condition", "details": f"condition must be one of {', '.join(CONDITIONS)}"}, status_code=400)
    return None


async def _upload_images(uid: str, files: List[UploadFile]) -> Tuple[List[str], Optional[JSONResponse]]:
    """Upload files one at a time, in order. Keys already uploaded stay in the bucket on failure."""
    if not files:
        return [], None
    allowed, rate_err = check_upload_rate_limit(uid, file_count=len(files))
    if not allowed:
        return [], JSONResponse({"error": "rate_limited", "details": rate_err}, status_code=429)

    keys: List[str] = []
    for f in files:
        data = await f.read()
        if not data:
            return keys, JSONResponse({"error": "empty_file", "details": f"{f.filename} está vacío"}, status_code=400)
        if len(data) > MAX_IMAGE_SIZE:
            return keys, JSONResponse({"error": "file_too_large", "details": f"{f.filename} supera {MAX_IMAGE_SIZE // (1024 * 1024)}MB"}, status_code=400)
        try:
            keys.append(await upload_file(data, f.filename, f.content_type))
        except StorageConfigError as ex:
            logger.error(f"Error subiendo imagen: {ex}")
            return keys, JSONResponse({"error": "storage_not_configured", "details": str(ex)}, status_code=500)
        except StorageUploadError as ex:
            logger.error(f"Error subiendo imagen {f.filename}: {ex}")
            return keys, JSONResponse({"error": "upload_failed", "details": f"{ex}. {CORS_HINT}", "status": ex.status_code}, status_code=502)
        except Exception as ex:
            logger.error(f"Error subiendo imagen {f.filename}: {ex}")
            return keys, JSONResponse({"error": "upload_failed", "details": f"{ex}. {CORS_HINT}"}, status_code=502)
    return keys, None


def _clean_keys(keys: Optional[List[str]]) -> List[str]:
    return [k.strip() for k in (keys or []) if isinstance(k, str) and k.strip()]


@router.get("/shops/{shop_id}/products")
async def list_products(shop_id: str, request: Request, db: Session = Depends(get_db)):
    """Catalog listing. The owner sees sold items (at the bottom); everyone else does not."""
    shop = db.query(Shop).filter(Shop.id == shop_id).first()
    if not shop:
        raise HTTPException(status_code=404, detail="Shop not found")
    uid = get_uid_from_request(request)
    is_owner = bool(uid and uid == shop.owner_id)
    try:
        products = await load_catalog(db, shop.id, is_owner=is_owner)
    except Exception as ex:
        logger.error(f"Error cargando productos de {shop_id}: {ex}")
        return JSONResponse({"error": "list_failed", "details": str(ex)}, status_code=500)
    return {"products": products, "isOwner": is_owner}


@router.post("/shops/{shop_id}/products")
async def create_product(
    shop_id: str,
    request: Request,
    title: str = Form(...),
    description: str = Form(""),
    price: float = Form(...),
    condition: str = Form(DEFAULT_CONDITION),
    files: Optional[List[UploadFile]] = File(None),
    imageKeys: Optional[List[str]] = Form(None),
    db: Session = Depends(get_db),
):
    """Create a product. Images are uploaded before the record is written."""
    uid = get_uid_from_request(request)
    if not uid:
        return JSONResponse({"error": "unauthorized"}, status_code=401)
    shop = db.query(Shop).filter(Shop.id == shop_id).first()
    if not shop:
        return JSONResponse({"error": "not_found", "details": "Shop not found"}, status_code=404)
    if shop.owner_id != uid:
        return JSONResponse({"error": "forbidden", "details": "No tienes una tienda asociada."}, status_code=403)

    invalid = _check_fields(title, price, condition)
    if invalid is not None:
        return invalid

    files = [f for f in (files or []) if f is not None and f.filename]
    keys = _clean_keys(imageKeys)
    total = len(keys) + len(files)
    if total < 1:
        return JSONResponse({"error": "images_required", "details": "Debes subir al menos una imagen del producto."}, status_code=400)
    if total > MAX_IMAGES_PER_PRODUCT:
        return JSONResponse({"error": "too_many_images", "details": f"Máximo {MAX_IMAGES_PER_PRODUCT} imágenes por producto"}, status_code=400)

    uploaded, err = await _upload_images(uid, files)
    if err is not None:
        return err

    now = datetime.now(timezone.utc)
    product = Product(
        id=uuid.uuid4().hex,
        shop_id=shop.id,
        title=title.strip(),
        description=(description or "").strip(),
        price=float(price),
        condition=condition,
        images=keys + uploaded,
        status=STATUS_AVAILABLE,
        created_at=now,
        updated_at=now,
    )
    try:
        db.add(product)
        db.commit()
        db.refresh(product)
    except Exception as ex:
        db.rollback()
        logger.error(f"Hubo un error al crear el producto: {ex}")
        return JSONResponse({"error": "create_failed", "details": str(ex)}, status_code=500)

    logger.info(f"Producto creado: {product.title} ({len(product.images)} imágenes)", extra=SUCCESS)
    return {"success": True, "product": product.to_dict()}


@router.put("/products/{product_id}")
async def update_product(
    product_id: str,
    request: Request,
    title: Optional[str] = Form(None),
    description: Optional[str] = Form(None),
    price: Optional[float] = Form(None),
    condition: Optional[str] = Form(None),
    files: Optional[List[UploadFile]] = File(None),
    imageKeys: Optional[List[str]] = Form(None),
    db: Session = Depends(get_db),
):
    """Rewrite text fields; the image list is replaced only when new images are supplied."""
    product, shop = _owned_product(request, db, product_id)

    invalid = _check_fields(title, price, condition)
    if invalid is not None:
        return invalid

    files = [f for f in (files or []) if f is not None and f.filename]
    keys = _clean_keys(imageKeys)
    if len(keys) + len(files) > MAX_IMAGES_PER_PRODUCT:
        return JSONResponse({"error": "too_many_images", "details": f"Máximo {MAX_IMAGES_PER_PRODUCT} imágenes por producto"}, status_code=400)

    uploaded, err = await _upload_images(shop.owner_id, files)
    if err is not None:
        return err

    try:
        if title is not None:
            product.title = title.strip()
        if description is not None:
            product.description = description.strip()
        if price is not None:
            product.price = float(price)
        if condition is not None:
            product.condition = condition
        new_images = keys + uploaded
        if new_images:
            product.images = new_images
            product.image_url = None
        product.updated_at = datetime.now(timezone.utc)
        db.commit()
        db.refresh(product)
    except Exception as ex:
        db.rollback()
        logger.error(f"Error actualizando producto {product_id}: {ex}")
        return JSONResponse({"error": "update_failed", "details": str(ex)}, status_code=500)

    return {"success": True, "product": product.to_dict()}


@router.delete("/products/{product_id}")
async def delete_product(product_id: str, request: Request, db: Session = Depends(get_db)):
    # Stored images are left in the bucket
    product, _shop = _owned_product(request, db, product_id)
    try:
        db.delete(product)
        db.commit()
    except Exception as ex:
        db.rollback()
        logger.error(f"Error deleting product {product_id}: {ex}")
        return JSONResponse({"error": "delete_failed", "details": str(ex)}, status_code=500)
    logger.info(f"Producto eliminado: {product_id}")
    return {"success": True}


@router.post("/products/{product_id}/sold")
async def mark_product_sold(product_id: str, request: Request, payload: SoldPayload, db: Session = Depends(get_db)):
    product, _shop = _owned_product(request, db, product_id)
    if not payload.confirmed:
        return JSONResponse({"error": "confirmation_required", "details": "Confirma que el producto fue vendido"}, status_code=400)
    try:
        product.mark_sold(payload.buyerInfo or "")
        db.commit()
        db.refresh(product)
    except Exception as ex:
        db.rollback()
        logger.error(f"Error marcando vendido {product_id}: {ex}")
        return JSONResponse({"error": "update_failed", "details": str(ex)}, status_code=500)
    logger.info(f"Producto vendido: {product.title}", extra=SUCCESS)
    return {"success": True, "product": product.to_dict()}


@router.post("/products/{product_id}/available")
async def mark_product_available(product_id: str, request: Request, db: Session = Depends(get_db)):
    product, _shop = _owned_product(request, db, product_id)
    try:
        product.mark_available()
        db.commit()
        db.refresh(product)
    except Exception as ex:
        db.rollback()
        logger.error(f"Error reactivando {product_id}: {ex}")
        return JSONResponse({"error": "update_failed", "details": str(ex)}, status_code=500)
    return {"success": True, "product": product.to_dict()}
