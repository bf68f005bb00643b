import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.responses import JSONResponse

logger = logging.getLogger(__name__)


class BookingServiceError(Exception):
    kind = "Error"
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict:
        return {"error": self.kind, "message": self.message}


class Unauthorized(BookingServiceError):
    kind = "Unauthorized"
    status_code = 401


class Forbidden(BookingServiceError):
    kind = "Forbidden"
    status_code = 403


class NotFound(BookingServiceError):
    kind = "NotFound"
    status_code = 404


class InvalidInput(BookingServiceError):
    kind = "InvalidInput"
    status_code = 400


class InvalidState(BookingServiceError):
    kind = "InvalidState"
    status_code = 409


class Conflict(BookingServiceError):
    kind = "Conflict"
    status_code = 409


class PaymentDeclined(BookingServiceError):
    kind = "PaymentDeclined"
    status_code = 402


class StoreUnavailable(BookingServiceError):
    kind = "StoreUnavailable"
    status_code = 503


_HTTP_KINDS = {
    400: "InvalidInput",
    401: "Unauthorized",
    403: "Forbidden",
    404: "NotFound",
    405: "InvalidInput",
    409: "Conflict",
}


async def _service_error_handler(request: Request, exc: BookingServiceError):
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


async def _validation_error_handler(request: Request, exc: RequestValidationError):
    parts = []
    for err in exc.errors():
        loc = ".".join(str(p) for p in err.get("loc", ()) if p != "body")
        parts.append(f"{loc}: {err.get('msg')}" if loc else str(err.get("msg")))
    return JSONResponse(
        status_code=400,
        content={"error": "InvalidInput", "message": "; ".join(parts) or "Invalid request"},
    )


async def _http_error_handler(request: Request, exc: StarletteHTTPException):
    kind = _HTTP_KINDS.get(exc.status_code, "Error")
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": kind, "message": str(exc.detail)},
        headers=getattr(exc, "headers", None),
    )


async def _store_error_handler(request: Request, exc: SQLAlchemyError):
    logger.error("%s %s store failure: %s", request.method, request.url.path, exc)
    return JSONResponse(
        status_code=StoreUnavailable.status_code,
        content={"error": StoreUnavailable.kind, "message": "Booking store is unavailable"},
    )


def register_error_handlers(app: FastAPI):
    app.add_exception_handler(BookingServiceError, _service_error_handler)
    app.add_exception_handler(RequestValidationError, _validation_error_handler)
    app.add_exception_handler(StarletteHTTPException, _http_error_handler)
    app.add_exception_handler(SQLAlchemyError, _store_error_handler)
