"""
Password hashing and access tokens.

- Passwords: passlib pbkdf2_sha256
- Tokens: HS256 JWTs (PyJWT) carrying the user id and a jti used for logout
"""
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional
import uuid

import jwt
from passlib.context import CryptContext
from sqlalchemy.orm import Session

from freightdesk.db.database import settings
from freightdesk.models import RevokedToken, User

JWT_ALGORITHM = "HS256"

_pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")


def get_password_hash(password: str) -> str:
    return _pwd_context.hash(password)


def verify_password(plain_password: str, password_hash: str) -> bool:
    try:
        return _pwd_context.verify(plain_password, password_hash)
    except (ValueError, TypeError):
        return False


def create_access_token(user: User, expires_minutes: Optional[int] = None) -> str:
    expires_at = datetime.now(timezone.utc) + timedelta(
        minutes=expires_minutes or settings.access_token_expire_minutes
    )
    payload = {
        "sub": str(user.id),
        "role": user.role.value if hasattr(user.role, "value") else user.role,
        "jti": uuid.uuid4().hex,
        "exp": expires_at,
    }
    return jwt.encode(payload, settings.jwt_secret, algorithm=JWT_ALGORITHM)


def decode_access_token(token: str) -> Optional[Dict[str, Any]]:
    """Payload of a valid, unexpired token; None otherwise."""
    try:
        payload = jwt.decode(token, settings.jwt_secret, algorithms=[JWT_ALGORITHM])
    except jwt.PyJWTError:
        return None
    return payload if isinstance(payload, dict) else None


def is_token_revoked(db: Session, jti: Optional[str]) -> bool:
    if not jti:
        return True
    return db.query(RevokedToken.id).filter(RevokedToken.jti == jti).first() is not None


def revoke_token(db: Session, payload: Dict[str, Any]) -> None:
    jti = payload.get("jti")
    if not jti or is_token_revoked(db, jti):
        return
    exp = payload.get("exp")
    expires_at = datetime.fromtimestamp(int(exp), tz=timezone.utc).replace(tzinfo=None) if exp else None
    db.add(RevokedToken(jti=jti, expires_at=expires_at))
    db.commit()


def authenticate_user(db: Session, email: str, password: str) -> Optional[User]:
    user = db.query(User).filter(User.email == email.strip().lower()).first()
    if not user or not user.is_active:
        return None
    if not verify_password(password, user.password_hash):
        return None
    return user
