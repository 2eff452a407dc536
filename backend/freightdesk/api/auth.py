"""
Authentication API endpoints.
"""
import logging
from typing import Any, Dict
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session
from freightdesk.api.deps import get_token_payload
from freightdesk.db.database import get_db
from freightdesk.models import User, UserRole
from freightdesk.schemas.auth import LoginRequest, RegisterRequest, TokenResponse, UserResponse
from freightdesk.services.security import (
    authenticate_user,
    create_access_token,
    get_password_hash,
    revoke_token,
)

logger = logging.getLogger(__name__)
router = APIRouter()


@router.post("/register", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
async def register(
    payload: RegisterRequest,
    db: Session = Depends(get_db)
):
    """Register a new user account."""
    email = payload.email.strip().lower()
    existing = db.query(User).filter(User.email == email).first()
    if existing:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"User with email '{email}' already exists"
        )

    user = User(
        name=payload.name.strip(),
        email=email,
        password_hash=get_password_hash(payload.password),
        role=UserRole.USER,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    logger.info("Registered user %s", user.email)
    return user


@router.post("/login", response_model=TokenResponse)
async def login(
    payload: LoginRequest,
    db: Session = Depends(get_db)
):
    """Exchange credentials for a bearer token."""
    user = authenticate_user(db, payload.email, payload.password)
    if not user:
        logger.warning("Failed login for %s", payload.email)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return TokenResponse(access_token=create_access_token(user), user=user)


@router.post("/logout")
async def logout(
    payload: Dict[str, Any] = Depends(get_token_payload),
    db: Session = Depends(get_db)
):
    """Revoke the presented token."""
    revoke_token(db, payload)
    return {"message": "Logged out successfully"}
