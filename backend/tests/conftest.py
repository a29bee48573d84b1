import os

# Настройки читаются при импорте app.core.config, поэтому окружение задаём до импорта приложения
os.environ["DATABASE_URL"] = "sqlite://"
os.environ.setdefault("LOG_LEVEL", "WARNING")

from datetime import timedelta

import pytest
import redis
from fastapi.testclient import TestClient

import app.core.redis_client as redis_module
from app.core.database import Base, SessionLocal, engine
from app.core.security import create_access_token
from app.main import app
from app.models import User, Job
from app.models.user import ROLE_ADMIN, ROLE_USER


class FakeRedis:
    """Redis в памяти: ровно те команды, что использует приложение"""

    def __init__(self):
        self.store = {}
        self.ttl = {}
        self.published = []
        self.fail_publish = False

    def setex(self, key, seconds, value):
        self.store[key] = value

    def exists(self, key):
        return 1 if key in self.store else 0

    def get(self, key):
        return self.store.get(key)

    def delete(self, key):
        self.store.pop(key, None)

    def incr(self, key):
        self.store[key] = int(self.store.get(key, 0)) + 1
        return self.store[key]

    def expire(self, key, seconds):
        self.ttl[key] = seconds
        return key in self.store

    def publish(self, channel, message):
        if self.fail_publish:
            raise redis.ConnectionError("redis is down")
        self.published.append((channel, message))
        return 1


@pytest.fixture(autouse=True)
def fake_redis(monkeypatch):
    fake = FakeRedis()
    monkeypatch.setattr(redis_module, "redis_client", fake)
    return fake


@pytest.fixture
def db():
    Base.metadata.create_all(bind=engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def client(db):
    with TestClient(app) as test_client:
        yield test_client


def make_user(db, email="user@example.com", role=ROLE_USER, resume_url=None, full_name="Test User"):
    user = User(
        email=email,
        password_hash="",
        full_name=full_name,
        role=role,
        resume_url=resume_url,
        applications_count=0
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


def make_job(db, title="Backend Developer", status="published", application_deadline=None):
    job = Job(
        title=title,
        description="Build and maintain the job portal backend services.",
        company="Acme",
        location="Remote",
        status=status,
        application_deadline=application_deadline,
        applicants_count=0,
        accepted_applicants=0,
        rejected_applicants=0
    )
    db.add(job)
    db.commit()
    db.refresh(job)
    return job


def auth_headers(user, expires=timedelta(minutes=5)):
    token = create_access_token({"sub": user.email, "user_id": user.id, "role": user.role}, expires)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def applicant(db):
    return make_user(db, "applicant@example.com", resume_url="https://files.example.com/cv.pdf")


@pytest.fixture
def admin(db):
    return make_user(db, "admin@example.com", role=ROLE_ADMIN, full_name="Admin")


@pytest.fixture
def job(db):
    return make_job(db)
