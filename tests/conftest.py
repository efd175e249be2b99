import os
from datetime import datetime

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

os.environ.setdefault('DATABASE_URL', 'sqlite:///./test.db')

from slotbook.database import Base  # noqa: E402
from slotbook.models.booking import BOOKING_STATUS_CONFIRMED, Booking  # noqa: E402
from slotbook.models.resource import Resource  # noqa: E402
from slotbook.models.shift import Shift  # noqa: E402
from slotbook.models.user import ROLE_CLIENT, ROLE_PROFESSIONAL, User  # noqa: E402


@pytest.fixture
def db_engine():
    engine = create_engine(
        'sqlite://',
        connect_args={'check_same_thread': False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    try:
        yield engine
    finally:
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture
def session_factory(db_engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=db_engine)


@pytest.fixture
def scheduling_db(session_factory):
    db = session_factory()
    try:
        yield db
    finally:
        db.close()


def add_user(db, role: str = ROLE_CLIENT, name: str | None = None, deleted_at: datetime | None = None) -> User:
    user = User(name=name or role.lower(), role=role, deleted_at=deleted_at)
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


def add_professional(db, name: str | None = None) -> User:
    return add_user(db, ROLE_PROFESSIONAL, name=name)


def add_client(db, name: str | None = None) -> User:
    return add_user(db, ROLE_CLIENT, name=name)


def add_resource(db, name: str = 'Room A', is_active: bool = True, deleted_at: datetime | None = None) -> Resource:
    resource = Resource(name=name, is_active=is_active, deleted_at=deleted_at)
    db.add(resource)
    db.commit()
    db.refresh(resource)
    return resource


def add_shift(db, professional: User, resource: Resource, start: datetime, end: datetime, deleted_at: datetime | None = None) -> Shift:
    shift = Shift(
        professional_id=professional.id,
        resource_id=resource.id,
        start_time=start,
        end_time=end,
        deleted_at=deleted_at,
    )
    db.add(shift)
    db.commit()
    db.refresh(shift)
    return shift


def add_booking(
    db,
    client: User,
    shift: Shift,
    start: datetime,
    end: datetime,
    status: str = BOOKING_STATUS_CONFIRMED,
    deleted_at: datetime | None = None,
) -> Booking:
    booking = Booking(
        client_id=client.id,
        shift_id=shift.id,
        start_time=start,
        end_time=end,
        status=status,
        deleted_at=deleted_at,
    )
    db.add(booking)
    db.commit()
    db.refresh(booking)
    return booking
