import uuid
from sqlalchemy import JSON, Boolean, Column, String, Text
from sqlalchemy.dialects.postgresql import UUID
from .database import Base


class Department(Base):
    """Department or department section; composite codes look like ``restaurant:main``"""
    __tablename__ = "departments"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    code = Column(String, nullable=False, unique=True, index=True)
    name = Column(String, nullable=False)
    description = Column(Text, nullable=True)

    # Derived from the code when NULL
    category = Column(String, nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
    # False for departments whose stock is not kept in the ledger (suppliers, waste)
    tracks_inventory = Column(Boolean, nullable=False, default=True)

    # {"is_section": bool, "terminal_status": str}
    attributes = Column("metadata", JSON, nullable=False, default=dict)

    @property
    def to_schema(self):
        """Convert Department model to schema dictionary format"""
        return {
            "id": self.id,
            "code": self.code,
            "name": self.name,
            "description": self.description,
            "category": self.category,
            "is_active": self.is_active,
            "tracks_inventory": self.tracks_inventory,
            "attributes": self.attributes or {},
        }
