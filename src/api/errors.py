"""Exception handlers mapping domain errors to the JSON error envelope.

Every error response has the shape ``{"error": "<message>"}``. Outside
production, 5xx responses also carry ``details`` with the underlying failure
text when the error has one.
"""

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from structlog import get_logger

from src.bootstrap.userbase import get_userbase_config
from src.domain.exceptions import UserbaseError

logger = get_logger(__name__)


def _is_production() -> bool:
    return get_userbase_config().is_production


def error_response(error: UserbaseError) -> JSONResponse:
    """Build the JSON envelope for a domain error."""
    body: dict[str, str] = {"error": error.message}
    details = getattr(error, "details", None)
    if error.HTTP_STATUS >= 500 and details and not _is_production():
        body["details"] = str(details)
    return JSONResponse(status_code=error.HTTP_STATUS, content=body)


async def userbase_error_handler(request: Request, exc: UserbaseError) -> JSONResponse:
    if exc.HTTP_STATUS >= 500:
        logger.error(
            "request_error",
            path=request.url.path,
            error_code=exc.ERROR_CODE,
            error=exc.message,
            details=getattr(exc, "details", None),
        )
    else:
        logger.info(
            "request_rejected",
            path=request.url.path,
            error_code=exc.ERROR_CODE,
            status_code=exc.HTTP_STATUS,
        )
    return error_response(exc)


async def request_validation_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Malformed or non-JSON bodies are a plain 400."""
    logger.info("invalid_request_body", path=request.url.path)
    return JSONResponse(status_code=400, content={"error": "Invalid JSON body"})


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(UserbaseError, userbase_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
