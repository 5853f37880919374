from datetime import datetime
from typing import List, Optional
from uuid import UUID

from pydantic import field_validator

from schemas.common import CamelModel


def _blank_to_none(v: Optional[str]) -> Optional[str]:
    if v is None:
        return None
    v = v.strip()
    return v or None


class LedgerQuantityRead(CamelModel):
    department_id: UUID
    section_id: Optional[str] = None
    item_id: UUID
    quantity: int


class StockAdjustmentCreate(CamelModel):
    department_id: UUID
    item_id: UUID
    delta: int
    # Defaults to the section derived from the department code
    section_id: Optional[str] = None
    reason: Optional[str] = None

    @field_validator("delta")
    @classmethod
    def _non_zero(cls, v: int) -> int:
        if v == 0:
            raise ValueError("delta must be non-zero")
        return v

    @field_validator("section_id", "reason")
    @classmethod
    def _strip(cls, v: Optional[str]) -> Optional[str]:
        return _blank_to_none(v)


class ReceiptCreate(CamelModel):
    department_id: UUID
    item_id: UUID
    quantity: int
    section_id: Optional[str] = None
    reference: Optional[str] = None

    @field_validator("quantity")
    @classmethod
    def _positive(cls, v: int) -> int:
        if v <= 0:
            raise ValueError("quantity must be > 0")
        return v

    @field_validator("section_id", "reference")
    @classmethod
    def _strip(cls, v: Optional[str]) -> Optional[str]:
        return _blank_to_none(v)


class LedgerRowRead(CamelModel):
    department_id: UUID
    section_id: Optional[str] = None
    quantity: int
    updated_at: Optional[datetime] = None


class ItemStockRead(CamelModel):
    item_id: UUID
    sku: str
    name: str
    category: str
    canonical: int
    summed: int
    drift: int
    departments: List[LedgerRowRead] = []
