"""SKU model."""

import uuid
from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, String, Text, Uuid
from sqlalchemy.orm import relationship

from inventory_api.database import Base


class Sku(Base):
    """Stock keeping unit. The ``sku`` code's first two characters name the brand."""

    __tablename__ = "skus"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    sku = Column(String(100), nullable=False, unique=True, index=True)
    description = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc), nullable=False)

    # Relationships
    images = relationship("SkuImage", back_populates="sku")

    def __repr__(self):
        return f"<Sku(id={self.id}, sku={self.sku})>"
