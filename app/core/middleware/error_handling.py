"""
Exception handlers translating service errors into HTTP responses.

Every error body has the shape ``{"error": {"message", "code", "details", "type"}}``.
"""
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from app.core.exceptions import BaseAppException, ErrorCode
from app.core.logging import get_logger

logger = get_logger(__name__)


def _error_body(message: str, code: ErrorCode, details=None, error_type: str = "Error") -> dict:
    return {
        "error": {
            "message": message,
            "code": code.value,
            "details": details or {},
            "type": error_type,
        }
    }


async def handle_application_exception(request: Request, exception: BaseAppException) -> JSONResponse:
    """Handle custom application exceptions"""
    log = logger.error if exception.status_code >= 500 else logger.warning
    log(
        f"Application exception: {exception.error_code.value} - {exception.message}",
        extra={
            "error_code": exception.error_code.value,
            "status_code": exception.status_code,
            "path": request.url.path,
            "method": request.method,
        },
    )
    return JSONResponse(status_code=exception.status_code, content=exception.to_dict())


async def handle_validation_error(request: Request, exception: RequestValidationError) -> JSONResponse:
    """Handle request body and parameter validation errors"""
    field_errors = {}
    for error in exception.errors():
        field_path = ".".join(str(x) for x in error["loc"])
        field_errors[field_path] = {"message": error["msg"], "type": error["type"]}

    logger.warning(
        f"Validation error: {len(field_errors)} field(s) failed validation",
        extra={"validation_errors": field_errors, "path": request.url.path, "method": request.method},
    )
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=_error_body(
            "Request validation failed",
            ErrorCode.VALIDATION_ERROR,
            {"field_errors": field_errors, "error_count": len(field_errors)},
            "ValidationError",
        ),
    )


async def handle_database_error(request: Request, exception: SQLAlchemyError) -> JSONResponse:
    logger.error(
        f"Database exception: {type(exception).__name__}",
        exc_info=exception,
        extra={"path": request.url.path, "method": request.method},
    )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=_error_body("Database operation failed", ErrorCode.DATABASE_ERROR, error_type="DatabaseError"),
    )


async def handle_unexpected_exception(request: Request, exception: Exception) -> JSONResponse:
    # Internal details stay in the logs
    logger.critical(
        f"Unexpected exception: {type(exception).__name__} - {exception}",
        exc_info=exception,
        extra={"path": request.url.path, "method": request.method},
    )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=_error_body("An unexpected error occurred", ErrorCode.INTERNAL_ERROR, error_type="InternalError"),
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(BaseAppException, handle_application_exception)
    app.add_exception_handler(RequestValidationError, handle_validation_error)
    app.add_exception_handler(SQLAlchemyError, handle_database_error)
    app.add_exception_handler(Exception, handle_unexpected_exception)
