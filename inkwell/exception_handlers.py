import logging
import traceback

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from inkwell.errors import BlogError, Unauthorized
from inkwell.settings import get_settings

logger = logging.getLogger(__name__)


def error_body(message: str, exc: Exception | None = None) -> dict:
    body = {"success": False, "message": message}
    if exc is not None and not get_settings().is_production:
        body["stack"] = "".join(traceback.format_exception(exc))
    return body


async def blog_error_handler(request: Request, exc: BlogError) -> JSONResponse:
    headers = {"WWW-Authenticate": "Bearer"} if isinstance(exc, Unauthorized) else None
    trace_source = exc if exc.status_code >= 500 else None
    if trace_source is not None:
        logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
    return JSONResponse(
        status_code=exc.status_code,
        content=error_body(exc.message, trace_source),
        headers=headers,
    )


async def request_validation_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    body = error_body("Invalid request")
    body["errors"] = jsonable_encoder(exc.errors())
    return JSONResponse(status_code=400, content=body)


async def http_exception_handler(
    request: Request, exc: StarletteHTTPException
) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content=error_body(str(exc.detail)),
        headers=getattr(exc, "headers", None),
    )


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error(
        f"Unhandled error on {request.method} {request.url.path} "
        f"query={dict(request.query_params)}: {exc}",
        exc_info=exc,
    )
    return JSONResponse(status_code=500, content=error_body("Internal Server Error", exc))


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(BlogError, blog_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
