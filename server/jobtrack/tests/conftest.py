import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from jobtrack.auth import get_current_user
from jobtrack.db import Base, get_db
from jobtrack.main import app
from jobtrack.models import Position, User


@pytest.fixture(autouse=True)
def override_auth(request):
    if request.node.get_closest_marker("real_auth"):
        yield
        return

    app.dependency_overrides[get_current_user] = lambda: User(
        id=1,
        username="admin",
        email="admin@jobtrack.local",
        first_name="System",
        last_name="Admin",
        password_hash="x",
        is_active=True,
        position=Position(id=1, name="Administrator", is_super_admin=True),
    )
    yield
    app.dependency_overrides.pop(get_current_user, None)


@pytest.fixture()
def client():
    engine = create_engine("sqlite+pysqlite://", connect_args={"check_same_thread": False}, poolclass=StaticPool)
    TestingSessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False)
    Base.metadata.create_all(engine)

    def override_get_db():
        db = TestingSessionLocal()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db

    with TestingSessionLocal() as db:
        db.add(
            User(
                id=1,
                username="admin",
                email="admin@jobtrack.local",
                first_name="System",
                last_name="Admin",
                password_hash="x",
                is_active=True,
            )
        )
        db.commit()

    with TestClient(app) as test_client:
        yield test_client, TestingSessionLocal

    app.dependency_overrides.pop(get_db, None)
    Base.metadata.drop_all(engine)
