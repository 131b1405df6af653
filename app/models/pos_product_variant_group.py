from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, String, func

from app.core.database import Base


class PosProductVariantGroup(Base):
    __tablename__ = "pos_product_variant_groups"

    id = Column(Integer, primary_key=True)
    product_id = Column(Integer, ForeignKey("pos_products.id", ondelete="CASCADE"), index=True, nullable=False)
    name = Column(String(100), nullable=False)
    name_ar = Column(String(100), nullable=True)
    required = Column(Boolean, default=True, nullable=False)
    sort_order = Column(Integer, default=0, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
