"""
User profile model
One record per Firebase Auth identity, created on first login
"""
from sqlalchemy import Column, String, Text, DateTime
from sqlalchemy.sql import func
from core.database import Base

class User(Base):
    __tablename__ = "users"

    # Primary key - Firebase Auth UID (immutable)
    uid = Column(String(128), primary_key=True, index=True)

    email = Column(String(255), index=True, nullable=True)
    display_name = Column(String(255), nullable=True)
    photo_url = Column(Text, nullable=True)

    # Set once the owner creates a shop
    shop_id = Column(String(128), nullable=True, index=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    def to_dict(self):
        """Convert to dict for API responses"""
        return {
            "uid": self.uid,
            "email": self.email,
            "displayName": self.display_name,
            "photoURL": self.photo_url,
            "shopId": self.shop_id,
            "createdAt": self.created_at.isoformat() if self.created_at else None,
        }
