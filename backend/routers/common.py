from fastapi import HTTPException, status

from core.errors import (
    ConfigurationError,
    InsufficientStock,
    InvalidCode,
    InvalidState,
    InvalidTransfer,
    LockConflict,
    NotFound,
    StockError,
)

ERROR_STATUS = {
    InvalidCode: status.HTTP_400_BAD_REQUEST,
    NotFound: status.HTTP_404_NOT_FOUND,
    InvalidTransfer: status.HTTP_400_BAD_REQUEST,
    InsufficientStock: status.HTTP_409_CONFLICT,
    InvalidState: status.HTTP_409_CONFLICT,
    ConfigurationError: status.HTTP_500_INTERNAL_SERVER_ERROR,
    LockConflict: status.HTTP_503_SERVICE_UNAVAILABLE,
}


def http_error(e: StockError) -> HTTPException:
    """Translate a StockError into an HTTPException carrying its structured payload."""
    code = ERROR_STATUS.get(type(e), status.HTTP_500_INTERNAL_SERVER_ERROR)
    return HTTPException(status_code=code, detail=e.to_dict())
