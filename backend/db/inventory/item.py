import uuid

from sqlalchemy import Boolean, Column, Integer, Numeric, String, Text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship

from ..database import Base


class InventoryItem(Base):
    __tablename__ = "inventory_items"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    sku = Column(String, nullable=False, unique=True, index=True)
    name = Column(String, nullable=False)
    description = Column(Text, nullable=True)

    # 'drinks' | 'food' | 'supplies' | 'toiletries' | 'misc'
    category = Column(String, nullable=False, index=True)

    # Canonical global total, audited against the sum of department rows
    quantity = Column(Integer, nullable=False, default=0)
    unit_price = Column(Numeric(10, 2), nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)

    department_stocks = relationship("DepartmentInventory", back_populates="inventory_item")
    movements = relationship("InventoryMovement", back_populates="inventory_item")

    @property
    def to_schema(self):
        return {
            "id": self.id,
            "sku": self.sku,
            "name": self.name,
            "category": self.category,
            "quantity": int(self.quantity or 0),
            "unit_price": float(self.unit_price) if self.unit_price is not None else None,
            "is_active": self.is_active,
        }
