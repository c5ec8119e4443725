import logging

from fastapi import FastAPI, Request, HTTPException
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from fastapi.exceptions import RequestValidationError

from core.exceptions import BaseCustomException


def error_response(status_code: int, message: str, **extra) -> JSONResponse:
    """
    Build the common error body.

    Parameters
    ----------
    status_code : int
        HTTP status code
    message : str
        Error message or message key

    Returns
    -------
    JSONResponse
        Error response
    """
    return JSONResponse(
        status_code=status_code,
        content={"status": "error", "message": message, **extra}
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """
    Handler for request validation errors.

    Parameters
    ----------
    request : Request
        FastAPI request
    exc : RequestValidationError
        Validation error

    Returns
    -------
    JSONResponse
        Error response
    """
    errors = []
    for error in exc.errors():
        field_path = ".".join(
            str(x) for x in error["loc"] if not isinstance(x, int) and x != "body"
        )
        errors.append({
            "field": field_path or "body",
            "message": error["msg"],
            "type": error["type"]
        })

    return error_response(422, "Validation error", errors=errors)


async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    """
    Handler for FastAPI and Starlette HTTP exceptions.

    Parameters
    ----------
    request : Request
        FastAPI request
    exc : StarletteHTTPException
        HTTP exception

    Returns
    -------
    JSONResponse
        Error response
    """
    return error_response(exc.status_code, exc.detail)


async def custom_exception_handler(request: Request, exc: Exception):
    """
    Handler for custom and unexpected exceptions.

    Unexpected exceptions are logged through the application logger and
    answered with a generic 500.

    Parameters
    ----------
    request : Request
        FastAPI request
    exc : Exception
        Exception

    Returns
    -------
    JSONResponse
        Error response
    """
    if isinstance(exc, BaseCustomException):
        return error_response(exc.get_status_code(), exc.message)

    container = request.app.state.dishka_container
    logger = await container.get(logging.Logger, component="logger")
    logger.error(f"Unhandled error on {request.url.path}: {exc!r}")
    return error_response(500, "Internal server error")


def register_exception_handlers(app: FastAPI) -> None:
    """
    Attach all handlers to the application.

    Parameters
    ----------
    app : FastAPI
        Application
    """
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(HTTPException, http_exception_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(BaseCustomException, custom_exception_handler)
    app.add_exception_handler(Exception, custom_exception_handler)
