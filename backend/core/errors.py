"""
Typed errors raised by the stock core.

Every error carries a machine-readable ``code`` and a ``retryable`` flag so
callers (routers, scripts) can tell a transient condition from a bad
request without parsing messages:

    StockError
    +-- InvalidCode          INVALID_CODE         not retryable
    +-- NotFound             NOT_FOUND            not retryable
    +-- InvalidTransfer      INVALID_TRANSFER     not retryable
    +-- InsufficientStock    INSUFFICIENT_STOCK   retryable
    +-- InvalidState         INVALID_STATE        not retryable
    +-- ConfigurationError   CONFIGURATION_ERROR  not retryable
    +-- LockConflict         LOCK_CONFLICT        retryable

Drift is never raised; reconciliation returns it as data.
"""
from typing import Any, Dict, Optional


class StockError(Exception):
    code: str = "STOCK_ERROR"
    retryable: bool = False

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)

    def details(self) -> Dict[str, Any]:
        """Structured attributes beyond code/message, overridden per error."""
        return {}

    def to_dict(self) -> Dict[str, Any]:
        return {
            "code": self.code,
            "message": self.message,
            "retryable": self.retryable,
            **self.details(),
        }


class InvalidCode(StockError):
    code = "INVALID_CODE"

    def __init__(self, raw_code: Any, reason: str = "malformed department code"):
        self.raw_code = raw_code
        super().__init__(f"Invalid department code {raw_code!r}: {reason}")

    def details(self) -> Dict[str, Any]:
        return {"department_code": self.raw_code}


class NotFound(StockError):
    code = "NOT_FOUND"

    def __init__(self, entity: str, entity_id: Any):
        self.entity = entity
        self.entity_id = entity_id
        super().__init__(f"{entity} not found: {entity_id}")

    def details(self) -> Dict[str, Any]:
        return {"entity": self.entity, "entity_id": str(self.entity_id)}


class InvalidTransfer(StockError):
    code = "INVALID_TRANSFER"


class InsufficientStock(StockError):
    code = "INSUFFICIENT_STOCK"
    retryable = True

    def __init__(
        self,
        item_id: Any,
        available: int,
        requested: int,
        department_id: Optional[Any] = None,
        section_id: Optional[str] = None,
    ):
        self.item_id = item_id
        self.available = available
        self.requested = requested
        self.department_id = department_id
        self.section_id = section_id
        where = f"department {department_id}" if department_id is not None else "canonical total"
        if section_id:
            where += f" section {section_id}"
        super().__init__(
            f"Insufficient stock for item {item_id} in {where}: "
            f"available={available} requested={requested}"
        )

    def details(self) -> Dict[str, Any]:
        return {
            "item_id": str(self.item_id),
            "department_id": str(self.department_id) if self.department_id is not None else None,
            "section_id": self.section_id,
            "available": self.available,
            "requested": self.requested,
        }


class InvalidState(StockError):
    code = "INVALID_STATE"

    def __init__(self, transfer_id: Any, status: str, action: str):
        self.transfer_id = transfer_id
        self.status = status
        self.action = action
        super().__init__(f"Cannot {action} transfer {transfer_id}: it is already {status}")

    def details(self) -> Dict[str, Any]:
        return {"transfer_id": str(self.transfer_id), "status": self.status}


class ConfigurationError(StockError):
    code = "CONFIGURATION_ERROR"


class LockConflict(StockError):
    code = "LOCK_CONFLICT"
    retryable = True
