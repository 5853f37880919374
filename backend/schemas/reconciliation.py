from dataclasses import asdict
from typing import List, Optional
from uuid import UUID

from schemas.common import CamelModel


class FindingRead(CamelModel):
    kind: str
    department_id: Optional[UUID] = None
    department_code: Optional[str] = None
    delta: Optional[int] = None


class DriftReportRead(CamelModel):
    item_id: UUID
    name: str
    sku: str
    category: str
    summed: int
    canonical: int
    drift: int
    diagnosis: List[FindingRead] = []

    @classmethod
    def from_report(cls, report) -> "DriftReportRead":
        audit = report.audit
        return cls(
            item_id=audit.item_id,
            name=audit.name,
            sku=audit.sku,
            category=audit.category,
            summed=audit.summed,
            canonical=audit.canonical,
            drift=audit.drift,
            diagnosis=[FindingRead(**asdict(f)) for f in report.diagnosis],
        )
