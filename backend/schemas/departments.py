from typing import Any, Dict, Optional
from uuid import UUID

from core.department_codes import department_category, department_section_id
from schemas.common import CamelModel


class DepartmentRead(CamelModel):
    id: UUID
    code: str
    name: str
    description: Optional[str] = None
    category: Optional[str] = None
    effective_category: str
    section_id: Optional[str] = None
    is_active: bool
    tracks_inventory: bool
    attributes: Dict[str, Any] = {}

    @classmethod
    def from_department(cls, department) -> "DepartmentRead":
        return cls(
            **department.to_schema,
            effective_category=department_category(department),
            section_id=department_section_id(department),
        )


class TerminalToday(CamelModel):
    count: int = 0
    total: float = 0


class TerminalDescriptor(CamelModel):
    id: str
    name: str
    department_code: str
    default_section_id: str
    slug: str
    status: str
    today: TerminalToday
