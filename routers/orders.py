from fastapi import APIRouter, Request, Depends
from fastapi.responses import JSONResponse
from pydantic import BaseModel
from sqlalchemy.orm import Session
import uuid

from core.auth import get_uid_from_request
from core.config import logger
from core.database import get_db
from models.order import Order
from models.product import Product

router = APIRouter(prefix="/api/orders", tags=["orders"])


class OrderPayload(BaseModel):
    productId: str


@router.post("")
async def create_order(request: Request, payload: OrderPayload, db: Session = Depends(get_db)):
    """Record a buyer's purchase intent before they pay through the wallet app."""
    uid = get_uid_from_request(request)
    if not uid:
        return JSONResponse({"error": "unauthorized"}, status_code=401)

    product = db.query(Product).filter(Product.id == payload.productId).first()
    if not product:
        return JSONResponse({"error": "not_found", "details": "Product not found"}, status_code=404)

    try:
        order = Order(
            id=uuid.uuid4().hex,
            buyer_id=uid,
            shop_id=product.shop_id,
            product_id=product.id,
            product_title=product.title,
            price=float(product.price or 0),
            status="pending_payment",
        )
        db.add(order)
        db.commit()
    except Exception as ex:
        db.rollback()
        logger.error(f"create order failed for {payload.productId}: {ex}")
        return JSONResponse({"error": "create_failed", "details": str(ex)}, status_code=500)

    return {"success": True, "orderId": order.id}
