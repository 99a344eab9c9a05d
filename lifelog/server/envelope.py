"""
Exception handlers rendering every failure as the response envelope:

    {"success": false, "data": null, "error": {"code": <http status>, "message": "..."}}
"""
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from lifelog.core.errors import LifelogError
from lifelog.core.logger import setup_logger
from lifelog.server.api.event.schema import Envelope

logger = setup_logger(__name__, include_location=True)


def error_response(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=Envelope.fail(status_code, message).model_dump(mode="json"),
    )


def format_validation_errors(errors) -> str:
    parts = []
    for error in errors:
        location = ".".join(str(item) for item in error.get("loc", ()) if item != "body")
        parts.append(f"{location}: {error.get('msg')}" if location else str(error.get("msg")))
    return "; ".join(parts) or "invalid request"


async def lifelog_error_handler(request: Request, exc: LifelogError) -> JSONResponse:
    status_code = exc.http_status
    if status_code >= 500:
        logger.exception(f"{request.method} {request.url.path} failed: {exc}", exc_info=exc)
    else:
        logger.warning(f"{request.method} {request.url.path} rejected ({status_code}): {exc}")
    return error_response(status_code, exc.message)


async def request_validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    message = format_validation_errors(exc.errors())
    logger.warning(f"{request.method} {request.url.path} invalid request: {message}")
    return error_response(422, message)


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return error_response(exc.status_code, str(exc.detail))


def install_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(LifelogError, lifelog_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
