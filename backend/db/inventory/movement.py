import uuid

from sqlalchemy import Column, DateTime, ForeignKey, Integer, Text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship

from core.clock import utcnow
from ..database import Base


class InventoryMovement(Base):
    """Append-only record of every ledger row change"""
    __tablename__ = "inventory_movements"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    department_id = Column(
        UUID(as_uuid=True),
        ForeignKey("departments.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    section_id = Column(Text, nullable=False, default="")

    inventory_item_id = Column(
        UUID(as_uuid=True),
        ForeignKey("inventory_items.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    change = Column(Integer, nullable=False)
    reason = Column(Text, nullable=True)  # 'transfer-out' | 'transfer-in' | 'adjustment' | 'receipt'
    source_type = Column(Text, nullable=True)  # 'transfer' | 'manual' | 'maintenance'
    source_id = Column(Text, nullable=True, index=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, index=True)

    inventory_item = relationship("InventoryItem", back_populates="movements")
