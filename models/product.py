"""
Product model
Belongs to exactly one shop; status drives buyer-facing visibility
"""
from datetime import datetime, timezone
from sqlalchemy import Column, String, Text, JSON, DateTime, Float
from sqlalchemy.sql import func
from core.database import Base

STATUS_AVAILABLE = "available"
STATUS_PENDING = "pending"
STATUS_SOLD = "sold"
STATUS_INACTIVE = "inactive"

PRODUCT_STATUSES = (STATUS_AVAILABLE, STATUS_PENDING, STATUS_SOLD, STATUS_INACTIVE)
# Statuses returned by catalog listings; inactive products never are
LISTED_STATUSES = (STATUS_AVAILABLE, STATUS_PENDING, STATUS_SOLD)

CONDITIONS = ("new", "used")
DEFAULT_CONDITION = "used"


class Product(Base):
    __tablename__ = "products"

    id = Column(String(64), primary_key=True, index=True)
    shop_id = Column(String(128), nullable=False, index=True)

    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=False, default="")
    price = Column(Float, nullable=False, default=0.0)
    condition = Column(String(16), nullable=False, default=DEFAULT_CONDITION)

    # Ordered storage keys or absolute URLs; index 0 is the card thumbnail
    images = Column(JSON, nullable=False, default=list)
    # Legacy single-image field, only read when images is empty
    image_url = Column(Text, nullable=True)

    status = Column(String(16), nullable=False, default=STATUS_AVAILABLE, index=True)
    buyer_info = Column(Text, nullable=True)
    sold_at = Column(DateTime(timezone=True), nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=True)

    def image_sources(self) -> list[str]:
        imgs = [i for i in (self.images or []) if isinstance(i, str) and i.strip()]
        if imgs:
            return imgs
        if self.image_url and self.image_url.strip():
            return [self.image_url.strip()]
        return []

    def mark_sold(self, buyer_info: str = "", now: datetime | None = None):
        self.status = STATUS_SOLD
        self.buyer_info = (buyer_info or "").strip() or None
        self.sold_at = now or datetime.now(timezone.utc)

    def mark_available(self):
        self.status = STATUS_AVAILABLE
        self.buyer_info = None
        self.sold_at = None

    def to_dict(self):
        """Convert to dict for API responses"""
        return {
            "id": self.id,
            "shopId": self.shop_id,
            "title": self.title,
            "description": self.description or "",
            "price": float(self.price or 0),
            "condition": self.condition or DEFAULT_CONDITION,
            "images": self.image_sources(),
            "status": self.status,
            "buyerInfo": self.buyer_info,
            "soldAt": self.sold_at.isoformat() if self.sold_at else None,
            "createdAt": self.created_at.isoformat() if self.created_at else None,
            "updatedAt": self.updated_at.isoformat() if self.updated_at else None,
        }
