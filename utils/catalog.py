"""
Catalog presentation rules: legacy record normalization, visibility,
ordering and display URL resolution for product listings.
"""
import asyncio
import math
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from starlette.concurrency import run_in_threadpool

from models.product import STATUS_SOLD, LISTED_STATUSES, DEFAULT_CONDITION
from utils.storage import resolve_image_url


def normalize_product_record(data: Dict[str, Any]) -> Dict[str, Any]:
    """Map any stored product shape onto the canonical one.

    Older records carry a single ``imageUrl`` and sometimes ``name`` instead of ``title``;
    a non-empty ``images`` list always wins over the legacy field.
    """
    rec = dict(data or {})
    imgs = [i.strip() for i in (rec.get("images") or []) if isinstance(i, str) and i.strip()]
    legacy = rec.pop("imageUrl", None)
    if not imgs and isinstance(legacy, str) and legacy.strip():
        imgs = [legacy.strip()]
    rec["images"] = imgs
    legacy_name = rec.pop("name", None)
    rec["title"] = rec.get("title") or legacy_name or "Sin título"
    try:
        price = float(rec.get("price") or 0)
        rec["price"] = max(0.0, price) if math.isfinite(price) else 0.0
    except (TypeError, ValueError):
        rec["price"] = 0.0
    rec["condition"] = rec.get("condition") or DEFAULT_CONDITION
    rec["status"] = rec.get("status") or "available"
    return rec


def reconcile_sale_fields(rec: Dict[str, Any], now: Optional[datetime] = None) -> Dict[str, Any]:
    """Make ``soldAt`` present exactly when the record is sold.

    A sold record with no sale time keeps its status and is dated by its last update
    (or creation, or ``now``); any other status drops ``soldAt`` and ``buyerInfo``.
    """
    rec = dict(rec)
    if rec.get("status") == STATUS_SOLD:
        rec["soldAt"] = rec.get("soldAt") or rec.get("updatedAt") or rec.get("createdAt") or now or datetime.now(timezone.utc)
    else:
        rec["soldAt"] = None
        rec["buyerInfo"] = None
    return rec


def sort_sold_last(products: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    # sorted() is stable: relative order is kept inside each group
    return sorted(products, key=lambda p: 1 if p.get("status") == STATUS_SOLD else 0)


def visible_products(products: List[Dict[str, Any]], is_owner: bool) -> List[Dict[str, Any]]:
    """Listed statuses only; public viewers never see sold items, owners see everything."""
    items = [p for p in products if p.get("status") in LISTED_STATUSES]
    if not is_owner:
        items = [p for p in items if p.get("status") != STATUS_SOLD]
    return sort_sold_last(items)


async def _resolve_all(images: List[str]) -> List[Optional[str]]:
    return list(await asyncio.gather(*[run_in_threadpool(resolve_image_url, i) for i in images]))


async def attach_display_urls(products: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Resolve every product's images in parallel, preserving order.

    Adds ``imageUrls`` (one entry per stored image) and ``thumbnail`` (index 0).
    """
    resolved = await asyncio.gather(*[_resolve_all(p.get("images") or []) for p in products])
    out = []
    for p, urls in zip(products, resolved):
        item = dict(p)
        item["imageUrls"] = urls
        item["thumbnail"] = urls[0] if urls else None
        out.append(item)
    return out
