import logging
from decimal import Decimal

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware

from .config import settings
from .db import SessionLocal, ensure_schema
from .errors import FrontdeskError
from .limiter import limiter
from .models import RoomType, User, UserRole
from .routers import bookings, guests, payments, rooms

# --- Logging configuration ---
_level = logging.DEBUG if getattr(settings, "DEBUG", False) else logging.INFO
logging.basicConfig(
    level=_level,
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
# Align uvicorn loggers with our level (useful under Docker Compose)
for _name in ("uvicorn", "uvicorn.error", "uvicorn.access"):
    logging.getLogger(_name).setLevel(_level)
logger = logging.getLogger("frontdesk.startup")
logger.info("Starting %s (DEBUG=%s)", settings.APP_NAME, getattr(settings, "DEBUG", False))

# Seeded when the room_types table is empty
DEFAULT_ROOM_TYPES = [
    ("Single Room", "Standard single occupancy room", Decimal("50.00"), 1, ["WiFi", "TV", "Air Conditioning"]),
    ("Double Room", "Standard double occupancy room", Decimal("80.00"), 2, ["WiFi", "TV", "Air Conditioning", "Mini Bar"]),
    ("Suite", "Luxury suite with separate living area", Decimal("150.00"), 4, ["WiFi", "TV", "Air Conditioning", "Mini Bar", "Kitchenette", "Balcony"]),
    ("Family Room", "Large room suitable for families", Decimal("120.00"), 6, ["WiFi", "TV", "Air Conditioning", "Mini Bar", "Extra Beds"]),
]

app = FastAPI(
    title=settings.APP_NAME,
    version="0.1.0",
    description=(
        f"{settings.APP_NAME}: hotel back-office API.\n\n"
        "Bookings, rooms, guests and payments. All endpoints except the payment "
        "webhook expect the staff session cookie issued by the auth service."
    ),
)


@app.on_event("startup")
def startup_event():
    """Runs startup tasks: schema, default room types and a default admin."""
    logger.info("Running startup tasks...")
    ensure_schema()

    db = SessionLocal()
    try:
        if not db.query(RoomType).first():
            for name, description, price, occupancy, amenities in DEFAULT_ROOM_TYPES:
                room_type = RoomType(name=name, description=description, base_price=price, max_occupancy=occupancy)
                room_type.amenities = amenities
                db.add(room_type)
            logger.info("Seeded %d default room types.", len(DEFAULT_ROOM_TYPES))
        if not db.query(User).filter(User.role == UserRole.ADMIN).first():
            email = getattr(settings, "ADMIN_EMAIL", "admin@hotel.local")
            user = db.query(User).filter(User.email == email).first()
            if user:
                user.role = UserRole.ADMIN
            else:
                db.add(User(email=email, full_name="Admin User", role=UserRole.ADMIN))
            logger.info("Default admin user ensured.")
        db.commit()
    finally:
        db.close()
    logger.info("Startup tasks complete.")


@app.exception_handler(FrontdeskError)
def frontdesk_error_handler(request: Request, exc: FrontdeskError):
    logger.info("%s %s -> %s: %s", request.method, request.url.path, exc.kind, exc.message)
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message, "error": exc.kind})


# Add the limiter to the app state
app.state.limiter = limiter
# Add the exception handler for rate limit exceeded errors
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
app.add_middleware(SlowAPIMiddleware)

app.include_router(bookings.router)
app.include_router(rooms.router)
app.include_router(guests.router)
app.include_router(payments.router)

@app.get("/healthz")
@limiter.exempt
def healthz():
    return {"status": "ok"}
