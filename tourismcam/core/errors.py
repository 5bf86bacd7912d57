from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException


logger = logging.getLogger(__name__)

UNEXPECTED_ERROR = "An unexpected error occurred"


class MissingRelationError(LookupError):
    """A stored record points at a user or post that no longer exists."""

    def __init__(self, kind: str, ref: str) -> None:
        super().__init__(f"{kind} {ref} referenced but not found")
        self.kind = kind
        self.ref = ref


def _validation_message(exc: RequestValidationError) -> str:
    errors = exc.errors()
    if not errors:
        return "Invalid request"
    first = errors[0]
    if first.get("type") == "missing":
        field = str(first.get("loc", ["", "field"])[-1])
        return f"{field} is required"
    msg = str(first.get("msg", "Invalid request"))
    return msg.removeprefix("Value error, ")


async def http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content={"error": exc.detail}, headers=getattr(exc, "headers", None))


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    return JSONResponse(status_code=400, content={"error": _validation_message(exc)})


async def missing_relation_handler(request: Request, exc: MissingRelationError) -> JSONResponse:
    logger.error("Broken reference while serving %s: %s", request.url.path, exc)
    return JSONResponse(status_code=500, content={"error": UNEXPECTED_ERROR})


def install_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(StarletteHTTPException, http_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(MissingRelationError, missing_relation_handler)
