import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from reservations.config import settings
from reservations.db import SessionLocal, init_database
from reservations.routers import appointments, auth, locations, public, rooms, users
from reservations.routers import settings as settings_router
from reservations.utils.auth import ensure_admin_user
from reservations.utils.errors import ReservationError, ValidationError
from reservations.utils.validation_helpers import request_errors

logging.basicConfig(
    level=settings.LOG_LEVEL.upper(),
    format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_: FastAPI):
    "lifespan for initing database and the admin account"
    init_database()
    db = SessionLocal()
    try:
        ensure_admin_user(db)
    finally:
        db.close()
    logger.info("Startup completed")
    yield


app = FastAPI(
    lifespan=lifespan,
    title=settings.APP_NAME,
    description="Room reservations across locations with availability checks, pricing and approvals.",
    version=settings.APP_VERSION,
    license_info={
        "name": "MIT",
        "url": "https://opensource.org/licenses/MIT",
    },
)


@app.exception_handler(ReservationError)
async def reservation_error_handler(request: Request, exc: ReservationError):
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.exception_handler(RequestValidationError)
async def request_validation_error_handler(request: Request, exc: RequestValidationError):
    error = ValidationError(request_errors(exc.errors()), detail="Invalid request")
    logger.error(f"Invalid request to {request.url.path}: {error.errors}")
    return JSONResponse(status_code=error.status_code, content=error.to_dict())


app.include_router(auth.router)
app.include_router(users.router)
app.include_router(locations.router)
app.include_router(rooms.router)
app.include_router(appointments.router)
app.include_router(public.router)
app.include_router(settings_router.router)
