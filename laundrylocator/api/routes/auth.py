from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from laundrylocator.config import settings
from laundrylocator.core.logger import get_logger
from laundrylocator.core.security import (
    create_access_token,
    get_current_user,
    hash_password,
    verify_password,
)
from laundrylocator.database import get_db
from laundrylocator.models import User
from laundrylocator.schemas.auth import LoginRequest, LoginResponse, RegisterRequest, UserOut

router = APIRouter()
logger = get_logger(__name__)


def _login_response(user: User) -> LoginResponse:
    token = create_access_token(str(user.id), {"role": user.role, "username": user.username})
    return LoginResponse(access_token=token, user=UserOut.model_validate(user))


@router.post("/register", response_model=LoginResponse, status_code=status.HTTP_201_CREATED)
async def register(payload: RegisterRequest, db: Session = Depends(get_db)) -> LoginResponse:
    username = payload.username.strip()
    existing = (
        db.query(User)
        .filter(or_(func.lower(User.username) == username.lower(), User.email == payload.email))
        .first()
    )
    if existing:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Username or email already registered",
        )

    if payload.email == settings.admin_email.lower():
        role = "admin"
    elif payload.is_business_owner:
        role = "owner"
    else:
        role = "user"

    user = User(
        username=username,
        email=payload.email,
        password_hash=hash_password(payload.password),
        is_business_owner=payload.is_business_owner,
        role=role,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    logger.info("Registered user %s (%s)", user.id, role)
    return _login_response(user)


@router.post("/login", response_model=LoginResponse)
async def login(payload: LoginRequest, db: Session = Depends(get_db)) -> LoginResponse:
    identifier = payload.username.strip().lower()
    user = (
        db.query(User)
        .filter(or_(func.lower(User.username) == identifier, User.email == identifier))
        .first()
    )
    if user is None or not verify_password(payload.password, user.password_hash):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid credentials",
        )
    return _login_response(user)


@router.post("/logout")
async def logout() -> dict:
    return {"success": True}


@router.get("/me", response_model=UserOut)
async def me(user: User = Depends(get_current_user)) -> UserOut:
    return UserOut.model_validate(user)
