from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
    func,
)

from app.core.database import Base

PRODUCT_STATUS_ACTIVE = "active"
PRODUCT_STATUS_DELETED = "deleted"


class PosProduct(Base):
    __tablename__ = "pos_products"
    __table_args__ = (
        UniqueConstraint("business_id", "sku", name="uq_pos_products_business_sku"),
        CheckConstraint("base_price >= 0", name="ck_pos_products_base_price_non_negative"),
        Index("ix_pos_products_business_status", "business_id", "status"),
    )

    id = Column(Integer, primary_key=True)
    business_id = Column(Integer, ForeignKey("businesses.id", ondelete="CASCADE"), index=True, nullable=False)
    category_id = Column(Integer, ForeignKey("pos_categories.id", ondelete="SET NULL"), nullable=True, index=True)
    name = Column(String(200), nullable=False)
    name_ar = Column(String(200), nullable=True)
    sku = Column(String(64), nullable=True)
    description = Column(Text, nullable=True)
    base_price = Column(Numeric(10, 2), default=0, nullable=False)
    image_url = Column(Text, nullable=True)
    available = Column(Boolean, default=True, nullable=False)
    status = Column(String(20), default=PRODUCT_STATUS_ACTIVE, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )
