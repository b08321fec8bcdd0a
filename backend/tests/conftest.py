import os

os.environ.setdefault("DATABASE_URL", "sqlite+pysqlite://")

from datetime import datetime  # noqa: E402

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from labslot import main  # noqa: E402
from labslot.api.deps import get_db  # noqa: E402
from labslot.db.base import Base  # noqa: E402
import labslot.models  # noqa: E402,F401
from labslot.schemas.calendar_event import Actor, ActorRole  # noqa: E402
from labslot.schemas.timeslot import TimeSlot  # noqa: E402

OWNER_ID = "prof-1"
VALIDATOR_ID = "lab-1"


@pytest.fixture()
def client(monkeypatch):
    engine = create_engine(
        "sqlite+pysqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    Base.metadata.create_all(bind=engine)

    def override_get_db():
        db = TestingSessionLocal()
        try:
            yield db
        finally:
            db.close()

    monkeypatch.setattr(main, "ensure_schema", lambda: None)
    main.app.dependency_overrides[get_db] = override_get_db

    with TestClient(main.app) as test_client:
        yield test_client

    main.app.dependency_overrides.clear()


@pytest.fixture()
def owner():
    return Actor(user_id=OWNER_ID, role=ActorRole.owner)


@pytest.fixture()
def validator():
    return Actor(user_id=VALIDATOR_ID, role=ActorRole.validator)


@pytest.fixture()
def now():
    return datetime(2026, 3, 2, 8, 0)


def make_slot(slot_id, start, end, *, rooms=(), groups=(), **extra):
    """Slot on 2026-03-02 given "HH:MM" bounds."""
    day = "2026-03-02"
    return TimeSlot(
        id=slot_id,
        start_date=datetime.fromisoformat(f"{day}T{start}"),
        end_date=datetime.fromisoformat(f"{day}T{end}"),
        resource_ids=list(rooms),
        group_ids=list(groups),
        **extra,
    )


def owner_headers(user_id=OWNER_ID):
    return {"X-User-Id": user_id, "X-User-Role": "owner"}


def validator_headers(user_id=VALIDATOR_ID):
    return {"X-User-Id": user_id, "X-User-Role": "validator"}
