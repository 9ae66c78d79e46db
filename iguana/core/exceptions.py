from typing import Any

from fastapi import Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import ORJSONResponse


class AppError(Exception):
    """Base application error with consistent schema."""

    def __init__(
        self,
        message: str,
        code: str = "ERROR",
        status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR,
        details: dict[str, Any] | None = None,
    ):
        self.message = message
        self.code = code
        self.status_code = status_code
        self.details = details or {}
        super().__init__(message)


class ValidationError(AppError):
    def __init__(self, message: str = "Missing required fields", details: dict[str, Any] | None = None):
        super().__init__(message, code="VALIDATION_ERROR", status_code=status.HTTP_400_BAD_REQUEST, details=details)


class BadRequestError(AppError):
    def __init__(self, message: str = "Bad request", details: dict[str, Any] | None = None):
        super().__init__(message, code="BAD_REQUEST", status_code=status.HTTP_400_BAD_REQUEST, details=details)


class InsufficientCreditsError(AppError):
    def __init__(self, required: int, available: int):
        super().__init__(
            "Not enough credits. Please purchase more credits to continue.",
            code="INSUFFICIENT_CREDITS",
            status_code=status.HTTP_400_BAD_REQUEST,
            details={"required": required, "available": available},
        )


class ForbiddenError(AppError):
    def __init__(self, message: str = "Forbidden"):
        super().__init__(message, code="FORBIDDEN", status_code=status.HTTP_403_FORBIDDEN)


class NotFoundError(AppError):
    def __init__(self, message: str = "Not found"):
        super().__init__(message, code="NOT_FOUND", status_code=status.HTTP_404_NOT_FOUND)


class StoreReadError(AppError):
    """Reading from the store failed; the driver message goes into details."""

    code = "STORE_READ_ERROR"

    def __init__(self, message: str = "Failed to read from store", reason: str | None = None):
        details = {"reason": reason} if reason else None
        super().__init__(message, code=self.code, details=details)


class StoreWriteError(AppError):
    code = "STORE_WRITE_ERROR"

    def __init__(self, message: str = "Failed to write to store", reason: str | None = None):
        details = {"reason": reason} if reason else None
        super().__init__(message, code=self.code, details=details)


class ProfileReadError(StoreReadError):
    code = "PROFILE_READ_ERROR"

    def __init__(self, reason: str | None = None):
        super().__init__("Failed to fetch user profile", reason)


class TransactionCreateError(StoreWriteError):
    code = "TRANSACTION_CREATE_ERROR"

    def __init__(self, reason: str | None = None):
        super().__init__("Failed to create transaction", reason)


class ProfileUpdateError(StoreWriteError):
    code = "PROFILE_UPDATE_ERROR"

    def __init__(self, reason: str | None = None):
        super().__init__("Failed to update user credits", reason)


def _envelope(request: Request, message: str, code: str, details: dict[str, Any]) -> dict[str, Any]:
    body = {
        "success": False,
        "error": message,
        "code": code,
        "details": details,
    }
    if hasattr(request.state, "request_id"):
        body["request_id"] = request.state.request_id
    return body


def error_response(request: Request, exc: AppError) -> ORJSONResponse:
    return ORJSONResponse(
        status_code=exc.status_code,
        content=_envelope(request, exc.message, exc.code, exc.details),
    )


async def app_exception_handler(request: Request, exc: AppError) -> ORJSONResponse:
    if exc.status_code >= 500:
        from iguana.core.logging import get_logger
        get_logger(__name__).error("request_failed", code=exc.code, error=exc.message, **exc.details)
    return error_response(request, exc)


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> ORJSONResponse:
    # jsonable: pydantic error contexts may hold exception instances
    errors = [{"loc": list(e.get("loc", ())), "msg": e.get("msg"), "type": e.get("type")} for e in exc.errors()]
    return ORJSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=_envelope(request, "Invalid request", "VALIDATION_ERROR", {"errors": errors}),
    )


async def generic_exception_handler(request: Request, exc: Exception) -> ORJSONResponse:
    from iguana.core.logging import get_logger
    get_logger(__name__).exception("unhandled_exception", exc_info=exc)
    return ORJSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=_envelope(request, "Internal server error", "INTERNAL_ERROR", {}),
    )
