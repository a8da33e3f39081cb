# poufmaker/models/bid.py
# Модель Bid — предложение обивщика по изделию.
import enum

from sqlalchemy import Column, String, Float, DateTime, ForeignKey, Text, UniqueConstraint
from sqlalchemy.orm import relationship

from poufmaker.db.base import Base, new_id, utcnow
from poufmaker.models.user import enum_column


class BidStatus(str, enum.Enum):
    pending = "pending"
    accepted = "accepted"
    rejected = "rejected"


class Bid(Base):
    __tablename__ = "bids"
    # Один обивщик — одна ставка на изделие
    __table_args__ = (UniqueConstraint("product_id", "upholsterer_id", name="uq_bids_product_upholsterer"),)

    id = Column(String(36), primary_key=True, default=new_id)
    product_id = Column(String(36), ForeignKey("products.id", ondelete="CASCADE"), nullable=False, index=True)
    upholsterer_id = Column(String(36), ForeignKey("users.id"), nullable=False, index=True)
    amount = Column(Float, nullable=False)
    notes = Column(Text, nullable=True)
    status = Column(enum_column(BidStatus), nullable=False, default=BidStatus.pending, index=True)
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    product = relationship("Product", back_populates="bids")
    upholsterer = relationship("User")
