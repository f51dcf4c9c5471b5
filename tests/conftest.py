import os
import itertools
import pytest
from fastapi.testclient import TestClient
from sqlalchemy import delete

os.environ["DATABASE_URL"] = "sqlite://"


@pytest.fixture(scope="session")
def app_and_engine():
    import importlib
    main_mod = importlib.import_module("app.main")

    app = main_mod.app

    from app.database import engine
    from app.models import Base

    Base.metadata.create_all(bind=engine)

    return app, engine


@pytest.fixture()
def client(app_and_engine):
    app, _ = app_and_engine
    return TestClient(app)


@pytest.fixture(autouse=True)
def _clean_db(app_and_engine):
    _, engine = app_and_engine
    from app.models import Base

    with engine.begin() as conn:
        for table in reversed(Base.metadata.sorted_tables):
            conn.execute(delete(table))


class FakeClock:
    def __init__(self, start: int = 1_000):
        self.now = start

    def __call__(self) -> int:
        self.now += 1
        return self.now


@pytest.fixture()
def clock():
    return FakeClock()


@pytest.fixture()
def db(app_and_engine):
    from app.database import SessionLocal

    session = SessionLocal()
    yield session
    session.close()


@pytest.fixture()
def service(db, clock):
    from app.models import Ride, RideReview
    from app.service import RideService
    from app.store import RecordStore

    counter = itertools.count(1)
    return RideService(
        RecordStore(db, Ride),
        RecordStore(db, RideReview),
        new_id=lambda: f"id-{next(counter):04d}",
        clock=clock,
    )


RIDE = {
    "provider_id": "p1",
    "date": "2024-01-10",
    "start_time": "08:00",
    "end_time": "09:00",
    "start_location": "A",
    "end_location": "B",
    "available_seats": 3,
    "description": "commute",
}


def make_ride(**overrides) -> dict:
    return {**RIDE, **overrides}


@pytest.fixture()
def create_ride(client):
    def _create(**overrides) -> dict:
        r = client.post("/rides", json=make_ride(**overrides))
        assert r.status_code == 201, r.text
        return r.json()

    return _create
