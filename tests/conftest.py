"""
Pytest configuration and fixtures for API tests.
"""
import io
import os
import tempfile

# must be set before the application modules are imported
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["UPLOAD_DIR"] = tempfile.mkdtemp(prefix="fieldservice-uploads-")
os.environ["ADMIN_EMAIL"] = ""
os.environ["ADMIN_PASSWORD"] = ""
os.environ["SMTP_USER"] = ""
os.environ["SMTP_PASSWORD"] = ""

import pytest
from fastapi.testclient import TestClient
from PIL import Image
from sqlalchemy.pool import StaticPool
from sqlmodel import Session, SQLModel, create_engine

from fieldservice import config
from fieldservice.auth import hash_password
from fieldservice.database import get_session
from fieldservice.main import app
from fieldservice.models import Location, LocationService, Service, ServiceRecord, Unit, User

ADMIN_PASSWORD = "admin123"
OPERATOR_PASSWORD = "oper123"

engine = create_engine(
    "sqlite://",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)


@pytest.fixture(scope="function")
def session():
    """Fresh in-memory database for each test."""
    SQLModel.metadata.create_all(engine)
    with Session(engine) as db:
        yield db
    SQLModel.metadata.drop_all(engine)


@pytest.fixture(autouse=True)
def upload_dir(tmp_path, monkeypatch):
    path = tmp_path / "uploads"
    path.mkdir()
    monkeypatch.setattr(config, "UPLOAD_DIR", path)
    return path


@pytest.fixture(scope="function")
def client(session):
    def override_get_session():
        yield session

    app.dependency_overrides[get_session] = override_get_session
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def admin_user(session):
    user = User(
        email="admin@crb.com.br",
        name="Admin",
        role="ADMIN",
        password_hash=hash_password(ADMIN_PASSWORD),
    )
    session.add(user)
    session.commit()
    session.refresh(user)
    return user


@pytest.fixture
def operator_user(session):
    user = User(
        email="operador@crb.com.br",
        name="João Operador",
        role="OPERATOR",
        password_hash=hash_password(OPERATOR_PASSWORD),
        assignments=[{"contractGroup": "Bairro Centro", "role": "lead"}, {"contractGroup": "Other"}],
    )
    session.add(user)
    session.commit()
    session.refresh(user)
    return user


def _login(client, email, password):
    response = client.post("/api/auth/login", json={"email": email, "password": password})
    assert response.status_code == 200, f"Login failed: {response.json()}"
    return {"Authorization": f"Bearer {response.json()['access_token']}"}


@pytest.fixture
def auth_headers(client, admin_user):
    """Bearer headers of the admin."""
    return _login(client, admin_user.email, ADMIN_PASSWORD)


@pytest.fixture
def operator_headers(client, operator_user):
    return _login(client, operator_user.email, OPERATOR_PASSWORD)


@pytest.fixture
def seed_service(session):
    unit = Unit(name="Metros Quadrados", symbol="m²")
    session.add(unit)
    session.commit()
    service = Service(name="Roçada", unit_id=unit.id)
    session.add(service)
    session.commit()
    session.refresh(service)
    return service


@pytest.fixture
def make_location(session):
    def _make(city, name, is_group=False, parent_id=None, services=None):
        loc = Location(city=city, name=name, is_group=is_group, parent_id=parent_id)
        for service_id, measurement in (services or []):
            loc.services.append(LocationService(service_id=service_id, measurement=measurement))
        session.add(loc)
        session.commit()
        session.refresh(loc)
        return loc
    return _make


@pytest.fixture
def make_record(session):
    def _make(contract_group, operator=None, **fields):
        rec = ServiceRecord(
            operator_id=operator.id if operator else None,
            operator_name=operator.name if operator else None,
            contract_group=contract_group,
            **fields,
        )
        session.add(rec)
        session.commit()
        session.refresh(rec)
        return rec
    return _make


def png_bytes(color="red"):
    buf = io.BytesIO()
    Image.new("RGB", (4, 4), color).save(buf, format="PNG")
    return buf.getvalue()
