from datetime import datetime, timedelta, timezone

from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError, jwt
from passlib.context import CryptContext
from sqlalchemy.orm import Session, selectinload

from jobtrack.config import settings
from jobtrack.db import get_db
from jobtrack.errors import PermissionDeniedError
from jobtrack.models import Position, User
from jobtrack.permission_keys import PERMISSION_COLUMNS, PERMISSION_DEFINITIONS, PermissionKey

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/auth/login")


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain_password: str, password_hash: str) -> bool:
    return pwd_context.verify(plain_password, password_hash)


def create_access_token(data: dict, expires_delta: timedelta | None = None) -> str:
    to_encode = data.copy()
    expire = datetime.now(timezone.utc) + (expires_delta or timedelta(minutes=settings.access_token_expire_minutes))
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def has_permission(position: Position | None, permission: PermissionKey) -> bool:
    if position is None:
        return False
    if position.is_super_admin:
        return True
    return bool(getattr(position, PERMISSION_COLUMNS[permission]))


def get_permission_flags(position: Position | None) -> dict[str, bool]:
    return {key.value: has_permission(position, key) for key, _ in PERMISSION_DEFINITIONS}


def get_current_user(token: str = Depends(oauth2_scheme), db: Session = Depends(get_db)) -> User:
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )
    try:
        payload = jwt.decode(token, settings.jwt_secret, algorithms=[settings.jwt_algorithm])
        user_id = payload.get("sub")
        if user_id is None:
            raise credentials_exception
    except JWTError:
        raise credentials_exception

    # Position flags are re-read on every request so permission changes apply immediately.
    user = (
        db.query(User)
        .options(selectinload(User.position))
        .filter(User.id == int(user_id))
        .first()
    )
    if not user or not user.is_active:
        raise credentials_exception
    return user


def require_permission(permission: PermissionKey):
    def dependency(current_user: User = Depends(get_current_user)) -> User:
        if not has_permission(current_user.position, permission):
            raise PermissionDeniedError(f"Missing permission '{permission.value}'")
        return current_user

    return dependency
