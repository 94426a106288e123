import os

os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key-0123456789")
os.environ.setdefault("REST_SERVER_URI", "http://rest-server.test")
os.environ.setdefault("GRAFANA_URI", "http://grafana.test")

from unittest.mock import MagicMock  # noqa: E402

import jwt  # noqa: E402
import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from portal.core.config import settings  # noqa: E402
from portal.db.base import Base  # noqa: E402
from portal.models import user as _user_model  # noqa: E402,F401
from portal.schemas.jobs import JobInfo  # noqa: E402


def make_token(username: str = "alice", **claims) -> str:
    payload = {"username": username, "email": f"{username}@example.com", "oid": f"oid-{username}"}
    payload.update(claims)
    return jwt.encode(payload, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


def make_job(state: str | None = "RUNNING", name: str = "job-1", **status) -> JobInfo:
    job_status = {"state": state, "username": "alice"}
    job_status.update(status)
    return JobInfo.model_validate({"name": name, "jobStatus": job_status})


@pytest.fixture
def db_session():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    session = sessionmaker(bind=engine, autocommit=False, autoflush=False)()
    try:
        yield session
    finally:
        session.close()
        engine.dispose()


@pytest.fixture
def job_client():
    client = MagicMock()
    client.list_jobs.return_value = []
    client.get_job.return_value = make_job(state="RUNNING", name="job-1")
    client.get_job_config.return_value = {"protocolVersion": 2, "name": "job-1"}
    return client


@pytest.fixture
def api(db_session, job_client):
    from portal.api.routes.jobs import get_job_client_factory
    from portal.db.session import get_db
    from portal.main import app

    def _get_db():
        yield db_session

    app.dependency_overrides[get_db] = _get_db
    app.dependency_overrides[get_job_client_factory] = lambda: (lambda token: job_client)
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()
