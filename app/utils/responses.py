"""
Standardized response utilities
"""

from typing import Any, Optional
from fastapi import HTTPException, status
from fastapi.responses import JSONResponse

from app.schemas.common import StandardResponse, ErrorResponse
from app.services.outcomes import ErrorCode, Rejected

REJECTION_STATUS = {
    ErrorCode.EMPTY_NAME: status.HTTP_400_BAD_REQUEST,
    ErrorCode.CLOSED: status.HTTP_400_BAD_REQUEST,
    ErrorCode.BLACKLISTED: status.HTTP_400_BAD_REQUEST,
    ErrorCode.EVENT_OPEN: status.HTTP_400_BAD_REQUEST,
    ErrorCode.FRONT_DOOR_OFF: status.HTTP_400_BAD_REQUEST,
    ErrorCode.NO_PRIVILEGES: status.HTTP_403_FORBIDDEN,
    ErrorCode.FORBIDDEN: status.HTTP_403_FORBIDDEN,
    ErrorCode.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorCode.CONFLICT: status.HTTP_409_CONFLICT,
    ErrorCode.INVALID: status.HTTP_422_UNPROCESSABLE_ENTITY,
    ErrorCode.PERSISTENCE_FAILURE: status.HTTP_503_SERVICE_UNAVAILABLE,
}

def success_response(
    message: str,
    data: Any = None,
    status_code: int = 200
) -> JSONResponse:
    """Create standardized success response"""
    response = StandardResponse(
        success=True,
        message=message,
        data=data
    )
    return JSONResponse(
        content=response.model_dump(mode="json"),
        status_code=status_code
    )

def error_response(
    message: str,
    error_code: Optional[str] = None,
    details: Any = None,
    status_code: int = 400
) -> JSONResponse:
    """Create standardized error response"""
    response = ErrorResponse(
        message=message,
        error_code=error_code,
        details=details
    )
    return JSONResponse(
        content=response.model_dump(mode="json"),
        status_code=status_code
    )

def rejection_response(rejected: Rejected) -> JSONResponse:
    """Error envelope for a rejected action, with the status its reason maps to"""
    return error_response(
        message=rejected.message,
        error_code=rejected.reason.value,
        status_code=REJECTION_STATUS[rejected.reason]
    )

def result_response(result, status_code: int = 200) -> JSONResponse:
    """Success or error envelope for a service result"""
    if isinstance(result, Rejected):
        return rejection_response(result)
    return success_response(result.message, result.data, status_code=status_code)

def service_unavailable_error(message: str = "Service temporarily unavailable"):
    raise HTTPException(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        detail=message
    )

def rate_limit_error():
    raise HTTPException(
        status_code=status.HTTP_429_TOO_MANY_REQUESTS,
        detail="Rate limit exceeded. Please try again later."
    )
