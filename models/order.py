from sqlalchemy import Column, String, DateTime, Float
from sqlalchemy.sql import func
from core.database import Base

class Order(Base):
    """
    Purchase intent recorded when a buyer starts the payment flow.
    Written only; nothing reads these back yet.
    """
    __tablename__ = "orders"

    id = Column(String(64), primary_key=True)
    buyer_id = Column(String(128), index=True, nullable=False)
    shop_id = Column(String(128), index=True, nullable=False)
    product_id = Column(String(64), index=True, nullable=False)

    product_title = Column(String(255), nullable=True)  # snapshot at order time
    price = Column(Float, nullable=False, default=0.0)
    status = Column(String(32), nullable=False, default="pending_payment")

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
