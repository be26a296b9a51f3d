import asyncio
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from redis.exceptions import RedisError
from sqlalchemy import text

from .config import settings
from .database import SessionLocal
from .errors import BookingError
from .redis_client import redis_client
from .routers import bookings, checkout, internal, orders
from .services.reservation_sweeper import reservation_sweeper_loop

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    sweeper_task = None
    if settings.sweeper_enabled:
        sweeper_task = asyncio.create_task(reservation_sweeper_loop())

    yield

    if sweeper_task is not None:
        sweeper_task.cancel()
        try:
            await sweeper_task
        except asyncio.CancelledError:
            pass


app = FastAPI(title="Marketplace Booking API", lifespan=lifespan)

app.include_router(bookings.router)
app.include_router(checkout.router)
app.include_router(orders.router)
app.include_router(internal.router)


@app.exception_handler(BookingError)
async def booking_error_handler(request: Request, exc: BookingError):
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.get("/health")
def health():
    db = SessionLocal()
    try:
        db_ok = db.execute(text("SELECT 1")).scalar() == 1
    finally:
        db.close()

    try:
        redis_ok = bool(redis_client.ping())
    except RedisError:
        logger.warning("Redis ping failed")
        redis_ok = False

    return {"db": db_ok, "redis": redis_ok}
