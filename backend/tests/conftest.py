import json
import uuid
from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker

from marketplace.context import MarketplaceContext
from marketplace.database import get_db, init_db
from marketplace.main import app
from marketplace.models import (
    Job,
    ProfessionalProfile,
    ProfessionalService,
    Quotation,
    Service,
    ServiceCategory,
    User,
)
from marketplace.services.auth_service import token_store
from marketplace.services.notification_service import EventDispatcher
from marketplace.utils.timeutil import to_iso

# Monday 2025-03-10 15:00 UTC is 12:00 in Rosario.
START = datetime(2025, 3, 10, 15, 0, tzinfo=timezone.utc)
ROSARIO = (-32.9442, -60.6505)


def _set_sqlite_pragmas(dbapi_conn, connection_record):
    cursor = dbapi_conn.cursor()
    cursor.execute("PRAGMA journal_mode=WAL")
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


class FixedClock:
    def __init__(self, now: datetime = START):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now = self.now + timedelta(**kwargs)


class Factory:
    """Inserts rows directly, bypassing the services under test."""

    def __init__(self, db, clock):
        self.db = db
        self.clock = clock

    def _now(self):
        return to_iso(self.clock())

    def user(self, user_type="client", latitude=None, longitude=None, rating=0.0, **extra) -> User:
        user = User(
            id=str(uuid.uuid4()),
            email=f"{uuid.uuid4().hex[:10]}@example.com",
            password_hash="not-a-real-hash",
            first_name=extra.pop("first_name", "Ana"),
            last_name=extra.pop("last_name", "García"),
            user_type=user_type,
            latitude=latitude,
            longitude=longitude,
            city="Rosario",
            rating_avg=rating,
            rating_count=1 if rating else 0,
            created_at=self._now(),
            updated_at=self._now(),
            **extra,
        )
        self.db.add(user)
        self.db.commit()
        return user

    def professional(self, latitude=ROSARIO[0], longitude=ROSARIO[1], rating=0.0, premium=False,
                     work_radius_km=20, schedule=None, **profile_fields) -> User:
        user = self.user("professional", latitude, longitude, rating)
        self.db.add(ProfessionalProfile(
            id=str(uuid.uuid4()),
            user_id=user.id,
            work_radius_km=work_radius_km,
            subscription_type="premium" if premium else "free",
            work_schedule=json.dumps(schedule) if schedule else None,
            created_at=self._now(),
            updated_at=self._now(),
            **profile_fields,
        ))
        self.db.commit()
        return user

    def category(self, name="Plomería", sort_order=0) -> ServiceCategory:
        category = ServiceCategory(
            id=str(uuid.uuid4()), name=name, slug=f"{name.lower()}-{uuid.uuid4().hex[:6]}",
            sort_order=sort_order,
        )
        self.db.add(category)
        self.db.commit()
        return category

    def service(self, category, name="Destapación") -> Service:
        service = Service(
            id=str(uuid.uuid4()), category_id=category.id, name=name,
            slug=f"{name.lower()}-{uuid.uuid4().hex[:6]}", base_price=5000,
        )
        self.db.add(service)
        self.db.commit()
        return service

    def offer(self, professional: User, service: Service, price: float) -> ProfessionalService:
        offered = ProfessionalService(
            id=str(uuid.uuid4()), professional_id=professional.profile.id, service_id=service.id,
            custom_price=price, created_at=self._now(),
        )
        self.db.add(offered)
        self.db.commit()
        return offered

    def job(self, client: User, status="pending", **fields) -> Job:
        job = Job(
            id=str(uuid.uuid4()),
            job_number=fields.pop("job_number", f"TJ-{uuid.uuid4().hex[:6]}"),
            client_id=client.id,
            title=fields.pop("title", "Fix kitchen sink"),
            description=fields.pop("description", "The kitchen sink is clogged and leaking."),
            work_address=fields.pop("work_address", "Córdoba 1234"),
            status=status,
            published_at=self._now() if status != "draft" else None,
            created_at=self._now(),
            updated_at=self._now(),
            **fields,
        )
        self.db.add(job)
        self.db.commit()
        return job

    def quotation(self, job: Job, professional: User, total_price=10000.0, valid_for=timedelta(days=7),
                  status="pending") -> Quotation:
        quotation = Quotation(
            id=str(uuid.uuid4()),
            job_id=job.id,
            professional_id=professional.id,
            total_price=total_price,
            description="Replace trap and clean drain.",
            status=status,
            valid_until=to_iso(self.clock() + valid_for),
            created_at=self._now(),
            updated_at=self._now(),
        )
        self.db.add(quotation)
        self.db.commit()
        return quotation


@pytest.fixture
def tmp_data(tmp_path):
    data_dir = tmp_path / "MarketplaceData"
    data_dir.mkdir()
    return data_dir


@pytest.fixture
def test_db(tmp_data):
    db_path = tmp_data / "db.sqlite"
    engine = create_engine(
        f"sqlite:///{db_path}",
        connect_args={"check_same_thread": False},
    )
    event.listen(engine, "connect", _set_sqlite_pragmas)
    TestSession = sessionmaker(bind=engine, autoflush=False, autocommit=False)

    init_db(db_path)

    def override_get_db():
        db = TestSession()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    yield TestSession
    app.dependency_overrides.clear()
    engine.dispose()


@pytest.fixture
def db(test_db):
    session = test_db()
    yield session
    session.close()


@pytest.fixture
def clock():
    return FixedClock()


@pytest.fixture
def dispatcher():
    return EventDispatcher()


@pytest.fixture
def ctx(db, dispatcher, clock):
    return MarketplaceContext(db=db, dispatcher=dispatcher, clock=clock)


@pytest.fixture
def factory(db, clock):
    return Factory(db, clock)


@pytest.fixture
def client(test_db):
    token_store.clear()
    c = TestClient(app)
    yield c
    token_store.clear()


def register(client, user_type="client", **fields) -> tuple[dict, str]:
    """Register and log in through the API; returns (auth headers, user id)."""
    email = fields.pop("email", f"{uuid.uuid4().hex[:10]}@example.com")
    body = {
        "email": email,
        "password": "correct-horse-battery",
        "first_name": fields.pop("first_name", "Lucía"),
        "last_name": fields.pop("last_name", "Pérez"),
        "user_type": user_type,
        "latitude": ROSARIO[0],
        "longitude": ROSARIO[1],
        **fields,
    }
    r = client.post("/api/v1/auth/register", json=body)
    assert r.status_code == 201, r.text
    r = client.post("/api/v1/auth/login", json={"email": email, "password": "correct-horse-battery"})
    data = r.json()
    return {"Authorization": f"Bearer {data['token']}"}, data["user_id"]


JOB = {
    "title": "Fix kitchen sink",
    "description": "The kitchen sink is clogged and leaking.",
    "work_address": "Córdoba 1234",
    "work_latitude": ROSARIO[0],
    "work_longitude": ROSARIO[1],
    "preferred_date": "2025-03-20",
    "preferred_time": "09:30",
}


def quotation_body(price=10000, days=7) -> dict:
    return {
        "total_price": price,
        "description": "Replace trap and clean drain.",
        "valid_until": (datetime.now(timezone.utc) + timedelta(days=days)).isoformat(),
        "includes_materials": True,
        "materials_description": "PVC trap",
        "materials_cost": 2500,
    }
