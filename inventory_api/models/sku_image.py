"""SKU image model."""

import uuid
from datetime import datetime, timezone

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    UniqueConstraint,
    Uuid,
)
from sqlalchemy.orm import relationship

from inventory_api.database import Base


class SkuImage(Base):
    """One stored variant (main, thumbnail or zoom) of a SKU image."""

    __tablename__ = "sku_images"
    __table_args__ = (
        UniqueConstraint("sku_id", "image_url", name="uq_sku_images_sku_id_image_url"),
        Index("ix_sku_images_sku_primary_order", "sku_id", "is_primary", "display_order"),
    )

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    sku_id = Column(Uuid, ForeignKey("skus.id", ondelete="CASCADE"), nullable=False, index=True)
    image_url = Column(String(1000), nullable=False)
    image_type = Column(String(20), nullable=False)  # main, thumbnail, zoom
    display_order = Column(Integer, nullable=False, default=0)
    file_size_kb = Column(Integer, nullable=True)
    file_format = Column(String(20), nullable=True)
    alt_text = Column(String(255), nullable=True)
    is_primary = Column(Boolean, nullable=False, default=False)
    group_id = Column(Uuid, nullable=False, index=True)
    uploaded_by = Column(Uuid, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    uploaded_at = Column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc), nullable=False)

    # Relationships
    sku = relationship("Sku", back_populates="images")
    uploader = relationship("User")

    def __repr__(self):
        return f"<SkuImage(id={self.id}, sku_id={self.sku_id}, type={self.image_type})>"
