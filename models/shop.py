"""
Shop model
A seller's storefront and the namespace for its products
"""
from sqlalchemy import Column, String, Text, DateTime, Boolean
from sqlalchemy.sql import func
from core.database import Base
from utils.themes import DEFAULT_THEME, resolve_theme

class Shop(Base):
    __tablename__ = "shops"

    # Slug id: slugified name plus a random suffix (see utils.validation.generate_shop_id)
    id = Column(String(128), primary_key=True, index=True)
    owner_id = Column(String(128), nullable=False, index=True)

    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=False, default="")
    whatsapp = Column(String(32), nullable=False, default="")  # digits and '+' only
    location = Column(String(255), nullable=False, default="")

    # Manual bank transfer details shown to buyers
    alias = Column(String(64), nullable=False, default="")
    cbu = Column(String(22), nullable=False, default="")

    theme = Column(String(32), nullable=False, default=DEFAULT_THEME)
    active = Column(Boolean, nullable=False, default=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=True)

    def to_dict(self):
        """Convert to dict for API responses"""
        theme_key, theme = resolve_theme(self.theme)
        return {
            "id": self.id,
            "ownerId": self.owner_id,
            "name": self.name,
            "description": self.description or "",
            "whatsapp": self.whatsapp or "",
            "location": self.location or "",
            "alias": self.alias or "",
            "cbu": self.cbu or "",
            "theme": theme_key,
            "themePreset": theme,
            "active": bool(self.active),
            "createdAt": self.created_at.isoformat() if self.created_at else None,
            "updatedAt": self.updated_at.isoformat() if self.updated_at else None,
        }
