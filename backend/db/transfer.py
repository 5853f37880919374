import uuid
from sqlalchemy import Column, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship

from core.clock import utcnow
from .database import Base

PENDING = "pending"
APPROVED = "approved"  # kept for stored data; approval goes straight to completed
REJECTED = "rejected"
COMPLETED = "completed"

TRANSFER_STATUSES = (PENDING, APPROVED, REJECTED, COMPLETED)


class DepartmentTransfer(Base):
    __tablename__ = "department_transfers"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    from_department_id = Column(UUID(as_uuid=True), ForeignKey("departments.id", ondelete="CASCADE"), nullable=False, index=True)
    to_department_id = Column(UUID(as_uuid=True), ForeignKey("departments.id", ondelete="CASCADE"), nullable=False, index=True)
    status = Column(Text, nullable=False, default=PENDING, index=True)  # pending|approved|rejected|completed

    created_by = Column(String, nullable=True)
    approved_by = Column(String, nullable=True)
    notes = Column(Text, nullable=True)
    rejection_reason = Column(Text, nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, index=True)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)
    completed_at = Column(DateTime(timezone=True), nullable=True)

    items = relationship(
        "DepartmentTransferItem",
        back_populates="transfer",
        cascade="all, delete-orphan",
        order_by="DepartmentTransferItem.position",
        lazy="selectin",
    )


class DepartmentTransferItem(Base):
    __tablename__ = "department_transfer_items"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    transfer_id = Column(UUID(as_uuid=True), ForeignKey("department_transfers.id", ondelete="CASCADE"), nullable=False, index=True)
    position = Column(Integer, nullable=False, default=0)

    product_type = Column(Text, nullable=False)  # 'inventoryItem' | 'drink'
    product_id = Column(UUID(as_uuid=True), ForeignKey("inventory_items.id", ondelete="CASCADE"), nullable=False, index=True)
    quantity = Column(Integer, nullable=False)

    transfer = relationship("DepartmentTransfer", back_populates="items")
