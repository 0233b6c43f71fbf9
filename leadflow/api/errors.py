"""
Error responses.

Domain errors are rendered as {"error", "message", "details"} with the
status code the error class carries.
"""

import logging

from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from leadflow.exceptions import LeadflowError, ValidationError

logger = logging.getLogger(__name__)


def leadflow_error_handler(request: Request, exc: LeadflowError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error(f"{exc.code} on {request.method} {request.url.path}: {exc.message}")
    else:
        logger.info(f"{exc.code} on {request.method} {request.url.path}: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content=jsonable_encoder(exc.to_dict()))


def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Malformed payloads are 400 with the same body shape as domain errors."""
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=jsonable_encoder({
            "error": ValidationError.code,
            "message": "Invalid request payload",
            "details": {"errors": exc.errors()},
        }),
    )


def setup_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(LeadflowError, leadflow_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
