import asyncio
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse
from redis.exceptions import RedisError
from sqlalchemy import text
from sqlalchemy.exc import DBAPIError, OperationalError

from .config import settings
from .database import SessionLocal, is_transient_error
from .errors import BookingError
from .redis_client import redis_client
from .routers import activities, availability, availability_templates, bookings
from .services.completion_checker import completion_checker_loop

logger = logging.getLogger(__name__)


def setup_logging() -> None:
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging()

    checker = None
    if settings.completion_checker_enabled:
        checker = asyncio.create_task(completion_checker_loop())

    yield

    if checker is not None:
        checker.cancel()
        await asyncio.gather(checker, return_exceptions=True)


app = FastAPI(title="Activity Booking API", lifespan=lifespan)

app.include_router(availability.router)
app.include_router(bookings.router)
app.include_router(availability_templates.router)
app.include_router(activities.router)


@app.exception_handler(BookingError)
async def booking_error_handler(request: Request, exc: BookingError):
    if exc.status_code >= 500:
        logger.error(f"{exc.code}: {exc.message}")
    else:
        logger.info(f"{request.method} {request.url.path} → {exc.status_code} {exc.code}")
    return JSONResponse(status_code=exc.status_code, content=exc.to_payload())


@app.exception_handler(DBAPIError)
async def storage_error_handler(request: Request, exc: DBAPIError):
    if not is_transient_error(exc):
        logger.exception(f"Storage error on {request.method} {request.url.path}")
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"code": "INTERNAL_ERROR", "message": "Internal server error"},
        )

    logger.warning(f"Storage unavailable on {request.method} {request.url.path}: {exc}")
    return JSONResponse(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        content={"code": "STORAGE_UNAVAILABLE", "message": "Please retry in a moment"},
    )


@app.get("/health", tags=["healthcheck"])
def health():
    db = SessionLocal()
    try:
        db.execute(text("SELECT 1"))
        database = True
    except OperationalError:
        database = False
    finally:
        db.close()

    redis = None
    if redis_client is not None:
        try:
            redis = redis_client.ping()
        except RedisError:
            redis = False

    return {"database": database, "redis": redis}
