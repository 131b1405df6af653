from sqlalchemy import Column, DateTime, ForeignKey, Integer, Numeric, String, func

from app.core.database import Base


class PosProductVariantOption(Base):
    __tablename__ = "pos_product_variant_options"

    id = Column(Integer, primary_key=True)
    variant_group_id = Column(
        Integer,
        ForeignKey("pos_product_variant_groups.id", ondelete="CASCADE"),
        index=True,
        nullable=False,
    )
    name = Column(String(100), nullable=False)
    name_ar = Column(String(100), nullable=True)
    # Signed delta over the product's base_price
    price_adjustment = Column(Numeric(10, 2), default=0, nullable=False)
    sort_order = Column(Integer, default=0, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
