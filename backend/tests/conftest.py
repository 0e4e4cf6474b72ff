import os

# The app engine is built at import time; keep it off any real database.
os.environ.setdefault("DATABASE_URL", "sqlite+pysqlite://")

import pytest
from fastapi.testclient import TestClient #gives you a fake http client that can call your FastAPI routes without running a real server.
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from schoolsched.api.deps import get_db
from schoolsched.core.security import get_password_hash
from schoolsched.db.base import Base
from schoolsched.main import app
from schoolsched.models.school_class import SchoolClass
from schoolsched.models.user import User, UserRole


@pytest.fixture()
def session_factory():
    engine = create_engine(
        "sqlite+pysqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield sessionmaker(autocommit=False, autoflush=False, bind=engine)
    engine.dispose()


@pytest.fixture()
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture()
def client(session_factory): #fake http client
    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()


@pytest.fixture()
def actor(db):
    user = User(
        name="Scheduling Admin",
        email="scheduler@example.com",
        hashed_password=get_password_hash("password123"),
        role=UserRole.admin,
    )
    db.add(user)
    db.commit()
    return user


@pytest.fixture()
def school_class(db):
    record = SchoolClass(name="Grade 5", grade=5, section="A", academic_year="2026")
    db.add(record)
    db.commit()
    return record


def register_user(client, payload):
    response = client.post("/api/v1/auth/register", json=payload)
    assert response.status_code == 201
    return response.json()


def login_user(client, email, password, role=None):
    body = {"email": email, "password": password}
    if role:
        body["role"] = role
    response = client.post("/api/v1/auth/login", json=body)
    assert response.status_code == 200
    return response.json()["access_token"]


def auth_headers_for(client, *, role: str, email: str | None = None) -> dict:
    email = email or f"{role}@example.com"
    register_user(
        client,
        {"name": f"{role.title()} User", "email": email, "password": "password123", "role": role},
    )
    token = login_user(client, email, "password123", role)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture()
def auth_headers(client):
    def factory(role: str = "admin", email: str | None = None) -> dict:
        return auth_headers_for(client, role=role, email=email)

    return factory


@pytest.fixture()
def admin_headers(auth_headers):
    return auth_headers("admin")
