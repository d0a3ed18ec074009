import logging
import os

from sqlalchemy.orm import Session

from .auth import hash_password
from .db import SessionLocal
from .models import Location, Position, Role, User
from .permission_keys import DEFAULT_POSITIONS, PERMISSION_COLUMNS


logger = logging.getLogger(__name__)

DEFAULT_ROLES = ["Project Lead", "Technician", "Electrician", "Helper", "Driver"]

DEFAULT_WAREHOUSE = {
    "name": "Main Warehouse",
    "type": "warehouse",
    "city": "Quezon City",
    "province": "Metro Manila",
    "country": "Philippines",
}


def _truncate_to_bcrypt_limit(password: str) -> str:
    """Truncate to bcrypt's 72-byte limit to avoid backend ValueError."""
    encoded = password.encode("utf-8")
    if len(encoded) <= 72:
        return password

    truncated = encoded[:72]
    while True:
        try:
            return truncated.decode("utf-8")
        except UnicodeDecodeError:
            truncated = truncated[:-1]


def _seed_positions(db: Session) -> dict[str, Position]:
    positions = {}
    for name, granted, is_super_admin in DEFAULT_POSITIONS:
        position = db.query(Position).filter(Position.name == name).first()
        if not position:
            position = Position(name=name)
            db.add(position)
        for permission, column in PERMISSION_COLUMNS.items():
            setattr(position, column, permission in granted)
        position.is_super_admin = is_super_admin
        positions[name] = position
    db.flush()
    return positions


def _seed_roles(db: Session) -> None:
    existing = {name for (name,) in db.query(Role.name).all()}
    for name in DEFAULT_ROLES:
        if name not in existing:
            db.add(Role(name=name))
    db.flush()


def _seed_warehouse(db: Session) -> Location:
    location = db.query(Location).filter(Location.name == DEFAULT_WAREHOUSE["name"]).first()
    if location:
        return location
    location = Location(**DEFAULT_WAREHOUSE)
    db.add(location)
    db.flush()
    return location


def _get_or_create_user(db: Session, position_id: int) -> User:
    user = db.query(User).filter(User.username == "admin").first()
    if user:
        user.position_id = position_id
        if not user.is_active:
            user.is_active = True
        return user

    seed_password = _truncate_to_bcrypt_limit(os.getenv("SEED_ADMIN_PASSWORD", "password123"))

    user = User(
        username="admin",
        email="admin@jobtrack.local",
        first_name="System",
        last_name="Admin",
        # passlib+bcrypt enforces bcrypt's 72-byte input limit.
        password_hash=hash_password(seed_password),
        position_id=position_id,
        is_active=True,
    )
    db.add(user)
    db.flush()
    return user


def run_seed():
    db: Session = SessionLocal()
    try:
        positions = _seed_positions(db)

        if os.getenv("SEED_SKIP_AUTH", "0") not in {"1", "true", "TRUE", "yes", "YES"}:
            try:
                _get_or_create_user(db, positions["Administrator"].id)
            except Exception:
                logger.exception("Skipping admin user creation")

        _seed_roles(db)
        _seed_warehouse(db)
        db.commit()
        logger.info("Seed completed")
    finally:
        db.close()


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    run_seed()
