"""
Shared fixtures for the tutor booking engine tests.

Every test gets its own in-memory SQLite database (StaticPool, so the API
thread and the test thread see the same connection). Times are built in UTC,
which is the default canonical zone.
"""

import os
from typing import Callable, Iterator, Optional

os.environ.setdefault("TUTORBOOK_ENVIRONMENT", "test")

from fastapi.testclient import TestClient
import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from tutorbook.core.tutor_lock import reset_local_locks
from tutorbook.database import Base
import tutorbook.models  # noqa: F401
from tutorbook.models import AvailabilityWindow, Subscription, TimeBlock, TutoringSession
from tutorbook.services.policy import BookingPolicy

from tests.helpers.scheduling import new_id


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite+pysqlite:///:memory:",
        future=True,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    Base.metadata.create_all(engine)
    yield engine
    Base.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture
def db(engine) -> Iterator[Session]:
    SessionLocal = sessionmaker(bind=engine, expire_on_commit=False, future=True)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture(autouse=True)
def _clean_local_locks() -> Iterator[None]:
    reset_local_locks()
    yield
    reset_local_locks()


@pytest.fixture
def policy() -> BookingPolicy:
    return BookingPolicy(
        min_notice_hours=12,
        slot_step_minutes=30,
        trial_cap=2,
        availability_horizon_days=42,
    )


@pytest.fixture
def tutor_id() -> str:
    return new_id()


@pytest.fixture
def parent_id() -> str:
    return new_id()


@pytest.fixture
def add_window(db: Session) -> Callable[..., AvailabilityWindow]:
    def _add(
        tutor_id: str,
        day_of_week: int,
        start_time: str,
        end_time: str,
        is_active: bool = True,
    ) -> AvailabilityWindow:
        window = AvailabilityWindow(
            tutor_id=tutor_id,
            day_of_week=day_of_week,
            start_time=start_time,
            end_time=end_time,
            is_active=is_active,
        )
        db.add(window)
        db.commit()
        return window

    return _add


@pytest.fixture
def add_block(db: Session) -> Callable[..., TimeBlock]:
    def _add(
        tutor_id: str, starts_at: int, ends_at: int, reason: Optional[str] = None
    ) -> TimeBlock:
        block = TimeBlock(tutor_id=tutor_id, starts_at=starts_at, ends_at=ends_at, reason=reason)
        db.add(block)
        db.commit()
        return block

    return _add


@pytest.fixture
def add_subscription(db: Session) -> Callable[..., Subscription]:
    def _add(tutor_id: str, parent_id: str, total_sessions: int = 3) -> Subscription:
        subscription = Subscription(
            tutor_id=tutor_id,
            parent_id=parent_id,
            total_sessions=total_sessions,
            sessions_per_week=1,
        )
        db.add(subscription)
        db.commit()
        return subscription

    return _add


@pytest.fixture
def add_session(db: Session) -> Callable[..., TutoringSession]:
    def _add(
        tutor_id: str,
        scheduled_at: int,
        duration: int = 60,
        parent_id: Optional[str] = None,
        subscription_id: Optional[str] = None,
        status: str = "scheduled",
        is_trial: bool = False,
    ) -> TutoringSession:
        session = TutoringSession(
            tutor_id=tutor_id,
            parent_id=parent_id or new_id(),
            student_name="Sam",
            subscription_id=subscription_id,
            scheduled_at=scheduled_at,
            duration=duration,
            status=status,
            is_trial=is_trial,
        )
        db.add(session)
        db.commit()
        return session

    return _add


@pytest.fixture
def client(engine) -> Iterator[TestClient]:
    from tutorbook.api.dependencies import get_db
    from tutorbook.main import create_app

    SessionLocal = sessionmaker(bind=engine, expire_on_commit=False, future=True)

    def _override_get_db() -> Iterator[Session]:
        session = SessionLocal()
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    app = create_app()
    app.dependency_overrides[get_db] = _override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()
