import logging
import math
from typing import Optional

from sqlalchemy import func, or_
from sqlalchemy.orm import Session, selectinload

from jobtrack.auth import get_permission_flags, has_permission
from jobtrack.errors import ConflictError, NotFoundError, PermissionDeniedError, ValidationError
from jobtrack.models import Position, User
from jobtrack.permission_keys import PermissionKey


logger = logging.getLogger(__name__)


def serialize_user(user: User) -> dict:
    position = user.position
    return {
        "id": user.id,
        "username": user.username,
        "email": user.email,
        "first_name": user.first_name,
        "last_name": user.last_name,
        "full_name": user.full_name,
        "is_active": user.is_active,
        "position_id": user.position_id,
        "position_name": position.name if position else None,
        "is_super_admin": bool(position and position.is_super_admin),
        "permissions": get_permission_flags(position),
        "last_login_at": user.last_login_at,
    }


def _manages_users(actor: User) -> bool:
    return has_permission(actor.position, PermissionKey.MANAGE_USERS)


def get_user(db: Session, user_id: int) -> User:
    user = db.query(User).options(selectinload(User.position)).filter(User.id == user_id).first()
    if not user:
        raise NotFoundError("User not found")
    return user


def get_visible_user(db: Session, user_id: int, actor: User) -> User:
    if actor.id != user_id and not _manages_users(actor):
        raise PermissionDeniedError("You can only view your own profile")
    return get_user(db, user_id)


def list_users(db: Session, search: Optional[str] = None, page: int = 1, limit: int = 10) -> dict:
    query = db.query(User).outerjoin(Position, User.position_id == Position.id)
    if search:
        like = f"%{search.lower()}%"
        query = query.filter(
            or_(
                func.lower(User.username).like(like),
                func.lower(User.email).like(like),
                func.lower(User.first_name).like(like),
                func.lower(User.last_name).like(like),
                func.lower(func.coalesce(Position.name, "")).like(like),
            )
        )

    total = query.count()
    users = (
        query.options(selectinload(User.position))
        .order_by(User.last_name.asc(), User.first_name.asc(), User.id.asc())
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )
    return {
        "users": [serialize_user(user) for user in users],
        "pagination": {
            "page": page,
            "limit": limit,
            "total": total,
            "total_pages": math.ceil(total / limit) if total else 0,
        },
    }


def update_user(db: Session, *, user_id: int, changes: dict, actor: User) -> User:
    """Users edit their own profile; changing someone else or any position needs MANAGE_USERS."""
    manager = _manages_users(actor)
    if actor.id != user_id and not manager:
        raise PermissionDeniedError("You can only update your own profile")
    if "position_id" in changes and not manager:
        raise PermissionDeniedError("Only user managers can change positions")
    if not changes:
        raise ValidationError("No valid fields to update")

    user = get_user(db, user_id)
    email = changes.get("email")
    if email and email != user.email:
        taken = db.query(User.id).filter(User.email == email, User.id != user_id).first()
        if taken:
            raise ConflictError("Email already in use")
    position_id = changes.get("position_id")
    if position_id is not None and not db.query(Position.id).filter(Position.id == position_id).scalar():
        raise NotFoundError("Position not found")

    for field, value in changes.items():
        setattr(user, field, value)
    db.flush()
    logger.info("User updated: user_id=%s by=%s fields=%s", user.id, actor.id, sorted(changes))
    return user


def set_user_active(db: Session, *, user_id: int, active: bool, actor: User) -> User:
    if not active and actor.id == user_id:
        raise ValidationError("You cannot deactivate your own account")
    user = get_user(db, user_id)
    user.is_active = active
    db.flush()
    logger.info("User %s: user_id=%s by=%s", "activated" if active else "deactivated", user.id, actor.id)
    return user
