"""
Centralized error handling.
Services raise ServiceError; the handlers below turn every failure into the
same JSON envelope and log it once.
"""

import traceback
from typing import Dict, Any, Optional
from fastapi import HTTPException, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from datetime import datetime, timezone

from isyourdayok.core.logger.logger import get_logger
from isyourdayok.infra.config.settings import get_settings

logger = get_logger(__name__)
settings = get_settings()


class ServiceErrorCode:
    """Standard error codes for services"""

    # Validation
    INVALID_INPUT = "INVALID_INPUT"
    MISSING_FIELD = "MISSING_FIELD"
    INVALID_ADDRESS = "INVALID_ADDRESS"
    INVALID_RATING = "INVALID_RATING"
    INVALID_ACHIEVEMENT_TYPE = "INVALID_ACHIEVEMENT_TYPE"

    # Not found
    USER_NOT_FOUND = "USER_NOT_FOUND"
    RESOURCE_NOT_FOUND = "RESOURCE_NOT_FOUND"

    # Authentication / authorization
    INVALID_SIGNATURE = "INVALID_SIGNATURE"
    CHALLENGE_NOT_FOUND = "CHALLENGE_NOT_FOUND"
    INVALID_TOKEN = "INVALID_TOKEN"
    TOKEN_EXPIRED = "TOKEN_EXPIRED"
    FORBIDDEN = "FORBIDDEN"

    # Rate Limiting
    RATE_LIMIT_EXCEEDED = "RATE_LIMIT_EXCEEDED"

    # Business Logic
    ACTIVITY_ALREADY_COMPLETED = "ACTIVITY_ALREADY_COMPLETED"
    ACHIEVEMENT_LOCKED = "ACHIEVEMENT_LOCKED"
    ALREADY_MINTED = "ALREADY_MINTED"
    MINT_IN_PROGRESS = "MINT_IN_PROGRESS"
    TRANSACTION_FAILED = "TRANSACTION_FAILED"

    # External dependencies
    CHAIN_UNAVAILABLE = "CHAIN_UNAVAILABLE"
    CHAIN_NOT_CONFIGURED = "CHAIN_NOT_CONFIGURED"

    # System
    INTERNAL_ERROR = "INTERNAL_ERROR"
    SERVICE_UNAVAILABLE = "SERVICE_UNAVAILABLE"


class ServiceError(Exception):
    """
    Standardized service error for internal use.
    Gets converted to proper HTTP response by error handler.
    """

    def __init__(
        self,
        code: str,
        message: str,
        status_code: int = 500,
        details: Optional[Dict[str, Any]] = None,
        context: Optional[Dict[str, Any]] = None
    ):
        self.code = code
        self.message = message
        self.status_code = status_code
        self.details = details or {}
        self.context = context or {}
        super().__init__(message)


class ValidationFailed(ServiceError):
    def __init__(self, message: str, code: str = ServiceErrorCode.INVALID_INPUT, details: Optional[Dict[str, Any]] = None):
        super().__init__(code, message, status.HTTP_422_UNPROCESSABLE_ENTITY, details)


class NotFound(ServiceError):
    def __init__(self, message: str = "Resource not found", code: str = ServiceErrorCode.RESOURCE_NOT_FOUND):
        super().__init__(code, message, status.HTTP_404_NOT_FOUND)


class Conflict(ServiceError):
    def __init__(self, code: str, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(code, message, status.HTTP_409_CONFLICT, details)


class Forbidden(ServiceError):
    def __init__(self, message: str = "Not allowed"):
        super().__init__(ServiceErrorCode.FORBIDDEN, message, status.HTTP_403_FORBIDDEN)


class ExternalServiceError(ServiceError):
    """Chain or other dependency failure. The revert reason is never categorized."""

    def __init__(
        self,
        message: str = "External service request failed",
        code: str = ServiceErrorCode.CHAIN_UNAVAILABLE,
        context: Optional[Dict[str, Any]] = None
    ):
        super().__init__(code, message, status.HTTP_502_BAD_GATEWAY, context=context)


class ErrorResponseBuilder:
    """Builds standardized error responses"""

    @staticmethod
    def build_error_response(
        error_code: str,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        request_id: Optional[str] = None
    ) -> Dict[str, Any]:
        """Build standardized error response"""

        response = {
            "success": False,
            "error": {
                "code": error_code,
                "message": message,
                "timestamp": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")
            }
        }

        if details:
            response["error"]["details"] = details

        if request_id:
            response["error"]["request_id"] = request_id

        return response


class GlobalErrorHandler:
    """Global error handler for all application errors"""

    @staticmethod
    async def service_error_handler(request: Request, exc: ServiceError) -> JSONResponse:
        """Handle ServiceError exceptions"""

        request_id = request.headers.get("X-Request-ID", "unknown")

        log = logger.error if exc.status_code >= 500 else logger.warning
        log(
            f"Service error: {exc.code}",
            extra={
                "error_code": exc.code,
                "error_message": exc.message,
                "status_code": exc.status_code,
                "details": exc.details,
                "context": exc.context,
                "request_id": request_id,
                "path": request.url.path,
                "method": request.method
            }
        )

        response = ErrorResponseBuilder.build_error_response(
            error_code=exc.code,
            message=exc.message,
            details=exc.details,
            request_id=request_id
        )

        return JSONResponse(
            status_code=exc.status_code,
            content=response
        )

    @staticmethod
    async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
        """Handle HTTPException with standardized format"""

        request_id = request.headers.get("X-Request-ID", "unknown")

        # Determine error code based on status
        if exc.status_code == 401:
            error_code = ServiceErrorCode.INVALID_TOKEN
        elif exc.status_code == 403:
            error_code = ServiceErrorCode.FORBIDDEN
        elif exc.status_code == 404:
            error_code = ServiceErrorCode.RESOURCE_NOT_FOUND
        elif exc.status_code == 429:
            error_code = ServiceErrorCode.RATE_LIMIT_EXCEEDED
        elif exc.status_code in (400, 422):
            error_code = ServiceErrorCode.INVALID_INPUT
        else:
            error_code = ServiceErrorCode.INTERNAL_ERROR

        logger.warning(
            f"HTTP exception: {exc.status_code}",
            extra={
                "status_code": exc.status_code,
                "detail": exc.detail,
                "request_id": request_id,
                "path": request.url.path,
                "method": request.method
            }
        )

        response = ErrorResponseBuilder.build_error_response(
            error_code=error_code,
            message=str(exc.detail),
            request_id=request_id
        )

        return JSONResponse(
            status_code=exc.status_code,
            content=response,
            headers=getattr(exc, "headers", None)
        )

    @staticmethod
    async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        """Handle Pydantic validation errors"""

        request_id = request.headers.get("X-Request-ID", "unknown")

        validation_errors = []
        for error in exc.errors():
            field = '.'.join(str(loc) for loc in error['loc'])
            validation_errors.append({
                'field': field,
                'message': error['msg'],
                'input': error.get('input')
            })

        logger.warning(
            f"Validation error: {len(validation_errors)} errors",
            extra={
                "validation_errors": validation_errors,
                "request_id": request_id,
                "path": request.url.path,
                "method": request.method
            }
        )

        response = ErrorResponseBuilder.build_error_response(
            error_code=ServiceErrorCode.INVALID_INPUT,
            message="Validation failed",
            details={"validation_errors": validation_errors},
            request_id=request_id
        )

        return JSONResponse(
            status_code=422,
            content=jsonable(response)
        )

    @staticmethod
    async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        """Handle unexpected exceptions"""

        request_id = request.headers.get("X-Request-ID", "unknown")

        # Log full traceback for debugging
        logger.error(
            f"Unexpected error: {type(exc).__name__}",
            extra={
                "error_type": type(exc).__name__,
                "error_message": str(exc),
                "request_id": request_id,
                "path": request.url.path,
                "method": request.method,
                "traceback": traceback.format_exc()
            }
        )

        # Never expose internal errors in production
        if settings.DEBUG:
            message = f"Internal error: {str(exc)}"
            details = {"traceback": traceback.format_exc()}
        else:
            message = "An unexpected error occurred. Please try again."
            details = {}

        response = ErrorResponseBuilder.build_error_response(
            error_code=ServiceErrorCode.INTERNAL_ERROR,
            message=message,
            details=details,
            request_id=request_id
        )

        return JSONResponse(
            status_code=500,
            content=response
        )


def jsonable(payload: Dict[str, Any]) -> Dict[str, Any]:
    """Validation inputs may carry bytes or other non-JSON values"""
    return jsonable_encoder(payload, custom_encoder={bytes: lambda b: b.decode(errors="replace")})
