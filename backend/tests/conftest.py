import os

# Must be set before forkcheck.config is imported
os.environ["DATABASE_URL"] = "sqlite:///:memory:"
os.environ["JWT_SECRET"] = "test-secret"
os.environ["AUTO_LOG_DOWNTIME"] = "true"

import base64

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from forkcheck.database import Base, get_db, init_db
from forkcheck.main import app
from forkcheck.models import User, UserRole
from forkcheck.security import create_access_token, hash_password

PHOTO = "data:image/jpeg;base64," + base64.b64encode(b"fake-jpeg-bytes").decode()


@pytest.fixture
def engine():
    test_engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    init_db(bind=test_engine)
    yield test_engine
    Base.metadata.drop_all(bind=test_engine)
    test_engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autocommit=False, autoflush=False)


@pytest.fixture
def db_session(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def client(session_factory):
    def override_get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    # No context manager: the lifespan would touch the configured database
    yield TestClient(app)
    app.dependency_overrides.clear()


def _make_user(db_session, username, role):
    user = User(username=username, password_hash=hash_password("secret123"), role=role)
    db_session.add(user)
    db_session.commit()
    db_session.refresh(user)
    return user


@pytest.fixture
def supervisor(db_session):
    return _make_user(db_session, "boss", UserRole.SUPERVISOR)


@pytest.fixture
def operator(db_session):
    return _make_user(db_session, "driver", UserRole.OPERATOR)


@pytest.fixture
def supervisor_headers(supervisor):
    return {"Authorization": f"Bearer {create_access_token(supervisor)}"}


@pytest.fixture
def operator_headers(operator):
    return {"Authorization": f"Bearer {create_access_token(operator)}"}


@pytest.fixture
def fleet(client, supervisor_headers):
    """One department with two units and a three-item checklist."""
    department = client.post(
        "/api/departments", json={"name": "Warehouse"}, headers=supervisor_headers
    ).json()
    units = [
        client.post(
            "/api/mhe-units",
            json={"unit_code": code, "name": f"Forklift {code}", "department_id": department["id"]},
            headers=supervisor_headers,
        ).json()
        for code in ("FL001", "FL002")
    ]
    items = [
        client.post(
            "/api/checklist-items",
            json={
                "part_name": part,
                "question": f"Is the {part.lower()} OK?",
                "qr_code_data": part.upper(),
                "sort_order": position,
            },
            headers=supervisor_headers,
        ).json()
        for position, part in enumerate(("Brakes", "Horn", "Forks"))
    ]
    return {"department": department, "units": units, "items": items}
