from sqlalchemy import Boolean, CheckConstraint, Column, DateTime, ForeignKey, Integer, Numeric, String, func

from app.core.database import Base


class PosProductModifier(Base):
    __tablename__ = "pos_product_modifiers"
    __table_args__ = (CheckConstraint("extra_price >= 0", name="ck_pos_product_modifiers_extra_price_non_negative"),)

    id = Column(Integer, primary_key=True)
    product_id = Column(Integer, ForeignKey("pos_products.id", ondelete="CASCADE"), index=True, nullable=False)
    name = Column(String(100), nullable=False)
    name_ar = Column(String(100), nullable=True)
    removable = Column(Boolean, default=True, nullable=False)
    addable = Column(Boolean, default=False, nullable=False)
    extra_price = Column(Numeric(10, 2), default=0, nullable=False)
    sort_order = Column(Integer, default=0, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
