from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from jobtrack.auth import verify_password
from jobtrack.db import Base
from jobtrack.models import Location, Position, Role, User
from jobtrack import seed


def _make_session_local():
    engine = create_engine(
        "sqlite+pysqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    TestingSessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False)
    Base.metadata.create_all(engine)
    return TestingSessionLocal, engine


def test_seed_creates_positions_roles_and_admin(monkeypatch):
    TestingSessionLocal, engine = _make_session_local()
    monkeypatch.setattr(seed, "SessionLocal", TestingSessionLocal)
    monkeypatch.delenv("SEED_SKIP_AUTH", raising=False)
    monkeypatch.delenv("SEED_ADMIN_PASSWORD", raising=False)

    seed.run_seed()
    seed.run_seed()

    with TestingSessionLocal() as db:
        assert db.query(Position).count() == len(seed.DEFAULT_POSITIONS)
        assert db.query(Role).count() == len(seed.DEFAULT_ROLES)
        assert db.query(Location).filter(Location.type == "warehouse").count() == 1

        admin = db.query(User).filter(User.username == "admin").one()
        assert admin.position.is_super_admin is True
        assert verify_password("password123", admin.password_hash)

        manager = db.query(Position).filter(Position.name == "Project Manager").one()
        assert manager.can_manage_projects is True
        assert manager.can_manage_inventory is False

    Base.metadata.drop_all(engine)


def test_seed_continues_when_admin_creation_fails(monkeypatch):
    TestingSessionLocal, engine = _make_session_local()
    monkeypatch.setattr(seed, "SessionLocal", TestingSessionLocal)
    monkeypatch.delenv("SEED_SKIP_AUTH", raising=False)

    def boom(*args, **kwargs):
        raise RuntimeError("auth unavailable")

    monkeypatch.setattr(seed, "_get_or_create_user", boom)

    seed.run_seed()

    with TestingSessionLocal() as db:
        assert db.query(User).count() == 0
        assert db.query(Role).count() > 0

    Base.metadata.drop_all(engine)


def test_truncate_to_bcrypt_limit_keeps_valid_utf8():
    password = "é" * 40

    truncated = seed._truncate_to_bcrypt_limit(password)

    assert len(truncated.encode("utf-8")) <= 72
    assert truncated == "é" * 36
