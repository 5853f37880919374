import uuid

from sqlalchemy import CheckConstraint, Column, DateTime, ForeignKey, Integer, Text, UniqueConstraint
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship

from core.clock import utcnow
from ..database import Base

# Plain (non-section) department rows use the empty section key so the unique
# constraint also covers them (NULLs never collide in a unique index).
NO_SECTION = ""


class DepartmentInventory(Base):
    __tablename__ = "department_inventories"
    __table_args__ = (
        UniqueConstraint("department_id", "section_id", "inventory_item_id", name="ux_department_inventory_key"),
        CheckConstraint("quantity >= 0", name="ck_department_inventory_quantity_non_negative"),
    )

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    department_id = Column(
        UUID(as_uuid=True),
        ForeignKey("departments.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    section_id = Column(Text, nullable=False, default=NO_SECTION)

    inventory_item_id = Column(
        UUID(as_uuid=True),
        ForeignKey("inventory_items.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    quantity = Column(Integer, nullable=False, default=0)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    department = relationship("Department")
    inventory_item = relationship("InventoryItem", back_populates="department_stocks")

    @property
    def to_schema(self):
        return {
            "department_id": self.department_id,
            "section_id": self.section_id or None,
            "inventory_item_id": self.inventory_item_id,
            "quantity": int(self.quantity or 0),
            "updated_at": self.updated_at,
        }
