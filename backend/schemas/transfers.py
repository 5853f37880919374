from datetime import datetime
from typing import List, Optional
from uuid import UUID

from schemas.common import CamelModel


class TransferLineCreate(CamelModel):
    # Checked by the workflow so a bad line is a 400 INVALID_TRANSFER
    product_type: str
    product_id: UUID
    quantity: int


class TransferCreate(CamelModel):
    from_department_id: UUID
    to_department_id: UUID
    items: List[TransferLineCreate]
    created_by: Optional[str] = None
    notes: Optional[str] = None


class TransferApprove(CamelModel):
    actor: Optional[str] = None


class TransferReject(CamelModel):
    reason: Optional[str] = None
    actor: Optional[str] = None


class TransferLineRead(CamelModel):
    id: UUID
    position: int
    product_type: str
    product_id: UUID
    quantity: int


class TransferRead(CamelModel):
    id: UUID
    from_department_id: UUID
    to_department_id: UUID
    status: str
    created_by: Optional[str] = None
    approved_by: Optional[str] = None
    notes: Optional[str] = None
    rejection_reason: Optional[str] = None
    created_at: datetime
    updated_at: datetime
    completed_at: Optional[datetime] = None
    items: List[TransferLineRead] = []
