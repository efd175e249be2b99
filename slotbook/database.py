import logging
from contextlib import contextmanager
from threading import Lock
from typing import Iterator

from sqlalchemy import create_engine, inspect, text
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from slotbook.core import config


logger = logging.getLogger(__name__)

connect_args = {'check_same_thread': False} if config.DATABASE_URL.startswith('sqlite') else {}

engine = create_engine(config.DATABASE_URL, echo=config.SQL_ECHO, connect_args=connect_args)

SessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    bind=engine,
)

Base = declarative_base()

_schema_lock = Lock()
_booking_schema_checked = False


@contextmanager
def transaction(db: Session) -> Iterator[Session]:
    """Commit everything issued inside the block atomically, or nothing."""
    try:
        yield db
        db.commit()
    except Exception:
        db.rollback()
        raise


def init_db(bind=None) -> None:
    # Registers every table on Base.metadata before create_all.
    from slotbook.models import booking, resource, shift, user  # noqa: F401

    bind = bind or engine
    Base.metadata.create_all(bind=bind)
    ensure_booking_schema(bind)


def ensure_booking_schema(bind=None) -> None:
    global _booking_schema_checked

    if _booking_schema_checked and bind is None:
        return

    bind = bind or engine

    with _schema_lock:
        inspector = inspect(bind)
        table_names = set(inspector.get_table_names())

        if not {'shifts', 'bookings'} <= table_names:
            logger.warning('Scheduling tables missing; skipping index bootstrap.')
            return

        statements = [
            'CREATE INDEX IF NOT EXISTS idx_shifts_time_range ON shifts(start_time, end_time)',
            'CREATE INDEX IF NOT EXISTS idx_shifts_professional_start ON shifts(professional_id, start_time)',
            'CREATE INDEX IF NOT EXISTS idx_shifts_resource_start ON shifts(resource_id, start_time)',
            'CREATE INDEX IF NOT EXISTS idx_bookings_time_range ON bookings(start_time, end_time)',
            'CREATE INDEX IF NOT EXISTS idx_bookings_client_start ON bookings(client_id, start_time)',
            (
                'CREATE UNIQUE INDEX IF NOT EXISTS uq_bookings_active_slot '
                'ON bookings(shift_id, start_time, end_time) '
                "WHERE status = 'CONFIRMED' AND deleted_at IS NULL"
            ),
        ]

        with bind.begin() as connection:
            for statement in statements:
                connection.execute(text(statement))

        _booking_schema_checked = True


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
