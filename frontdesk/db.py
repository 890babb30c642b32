import logging

from sqlalchemy import create_engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker, DeclarativeBase
from .config import settings

logger = logging.getLogger(__name__)

class Base(DeclarativeBase):
    pass

engine = create_engine(
    settings.DATABASE_URL,
    connect_args={"check_same_thread": False} if settings.DATABASE_URL.startswith("sqlite") else {},
)

SessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False)

def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


# Blocks overlapping confirmed/checked-in stays for one room at the storage level.
# Needs btree_gist for the equality operator on room_id.
BOOKING_OVERLAP_CONSTRAINT = "ex_bookings_room_active_overlap"

POSTGRES_OVERLAP_DDL = [
    "CREATE EXTENSION IF NOT EXISTS btree_gist;",
    f"""
    ALTER TABLE bookings ADD CONSTRAINT {BOOKING_OVERLAP_CONSTRAINT}
    EXCLUDE USING gist (
        room_id WITH =,
        daterange(check_in_date, check_out_date, '[)') WITH &&
    ) WHERE (status IN ('confirmed', 'checked_in'));
    """,
]


def ensure_schema(bind=None):
    """
    Best-effort schema setup for environments started without Alembic.
    - Create missing tables from the model metadata
    - On PostgreSQL, add the booking overlap exclusion constraint if it is missing
    Never fails app startup; problems are logged.
    """
    # Models must be imported so their tables are registered on Base.metadata
    from . import models  # noqa: F401

    bind = bind or engine
    try:
        Base.metadata.create_all(bind=bind)
    except SQLAlchemyError:
        logger.exception("Could not create tables")
        return

    if bind.dialect.name != "postgresql":
        return
    with bind.connect() as conn:
        exists = conn.exec_driver_sql(
            "SELECT 1 FROM pg_constraint WHERE conname = %(name)s;",
            {"name": BOOKING_OVERLAP_CONSTRAINT},
        ).first()
        if exists:
            return
        try:
            for ddl in POSTGRES_OVERLAP_DDL:
                conn.exec_driver_sql(ddl)
            conn.commit()
            logger.info("Installed booking overlap constraint %s", BOOKING_OVERLAP_CONSTRAINT)
        except SQLAlchemyError as exc:
            conn.rollback()
            logger.warning("Could not install booking overlap constraint: %s", exc)
