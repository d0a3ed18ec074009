from datetime import datetime
import logging

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session, selectinload

from jobtrack.auth import create_access_token, get_current_user, verify_password
from jobtrack.db import get_db
from jobtrack.models import User
from jobtrack.users.service import serialize_user


logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/auth", tags=["auth"])


class LoginPayload(BaseModel):
    username: str = Field(..., min_length=1)
    password: str = Field(..., min_length=1)


@router.post("/login")
def login(payload: LoginPayload, db: Session = Depends(get_db)):
    user = (
        db.query(User)
        .options(selectinload(User.position))
        .filter(User.username == payload.username)
        .first()
    )
    if not user or not user.is_active or not verify_password(payload.password, user.password_hash):
        logger.warning("Login rejected: username=%s", payload.username)
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid username or password")

    user.last_login_at = datetime.utcnow()
    db.commit()

    access_token = create_access_token({"sub": str(user.id), "username": user.username})
    logger.info("User logged in: user_id=%s", user.id)
    return {
        "success": True,
        "message": "Login successful",
        "access_token": access_token,
        "token_type": "bearer",
        "user": serialize_user(user),
    }


@router.get("/me")
def me(current_user: User = Depends(get_current_user)):
    return {"success": True, "data": serialize_user(current_user)}
