import logging

from fastapi import FastAPI

from .config import LOG_LEVEL
from .errors import register_error_handlers
from .middleware import RequestLoggingMiddleware
from .rabbitmq import publisher
from .routes import router

logging.basicConfig(
    level=LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s %(message)s",
)
logger = logging.getLogger(__name__)

OPENAPI_TAGS = [
    {"name": "System", "description": "Operational endpoints."},
    {"name": "Bookings", "description": "Booking requests and the laborer's decision and work progress."},
    {"name": "Payments", "description": "Cash/card payment for accepted bookings."},
    {"name": "Notifications", "description": "Customer and laborer notification feeds."},
    {"name": "Admin", "description": "Aggregates for the admin dashboard."},
]

app = FastAPI(title="Booking Service", openapi_tags=OPENAPI_TAGS)

app.add_middleware(RequestLoggingMiddleware)
register_error_handlers(app)
app.include_router(router)


@app.get("/health", tags=["System"])
async def health():
    return {
        "status": "ok",
        "service": "booking-service",
        "events_enabled": publisher.enabled,
    }


@app.on_event("startup")
async def startup():
    # Never crash service if RabbitMQ is temporarily unavailable
    try:
        await publisher.connect()
    except Exception as e:
        logger.warning("RabbitMQ connect failed at startup; continuing without events: %s", e)


@app.on_event("shutdown")
async def shutdown():
    try:
        await publisher.close()
    except Exception as e:
        logger.warning("RabbitMQ close failed: %s", e)
