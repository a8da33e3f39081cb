# poufmaker/models/product.py
# Модель Product — изделие, созданное клиентом; исполнитель назначается при принятии ставки.
import enum

from sqlalchemy import Column, String, Float, DateTime, ForeignKey, Text
from sqlalchemy.orm import relationship

from poufmaker.db.base import Base, new_id, utcnow
from poufmaker.models.user import enum_column


class ProductStatus(str, enum.Enum):
    ai_generated = "ai-generated"
    pending = "pending"
    in_progress = "in-progress"
    completed = "completed"


class Product(Base):
    __tablename__ = "products"

    id = Column(String(36), primary_key=True, default=new_id)
    title = Column(String, nullable=False)
    description = Column(Text, nullable=False)
    price = Column(Float, nullable=True)
    image_url = Column(String, nullable=True)
    status = Column(enum_column(ProductStatus), nullable=False, default=ProductStatus.ai_generated, index=True)
    creator_id = Column(String(36), ForeignKey("users.id"), nullable=False, index=True)
    manufacturer_id = Column(String(36), ForeignKey("users.id"), nullable=True)
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    creator = relationship("User", foreign_keys=[creator_id])
    manufacturer = relationship("User", foreign_keys=[manufacturer_id])
    # Ставки удаляются вместе с изделием
    bids = relationship(
        "Bid",
        back_populates="product",
        cascade="all, delete-orphan",
        order_by="Bid.created_at.desc()",
    )
