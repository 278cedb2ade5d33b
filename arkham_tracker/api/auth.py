"""
Auth helpers: password hashing and JWT sessions.
A token carries the session: user id (sub) and username.
Bcrypt accepts at most 72 bytes; we truncate manually before hashing.
We use bcrypt directly so the truncated bytes are passed through with no extra encoding.
"""

import bcrypt
import os
import re
from dataclasses import dataclass
from datetime import datetime, timedelta
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from jose import JWTError, jwt
from sqlalchemy.orm import Session

from .database import get_db
from .models import User

# Username: alphanumeric and underscore only, 2–32 chars
USERNAME_PATTERN = re.compile(r"^[a-zA-Z0-9_]{2,32}$")

SECRET_KEY = os.environ.get("JWT_SECRET", "change-me-in-production-use-env")
ALGORITHM = "HS256"
ACCESS_TOKEN_EXPIRE_DAYS = 30

BCRYPT_MAX_BYTES = 72
BCRYPT_ROUNDS = int(os.environ.get("BCRYPT_ROUNDS", "10"))
security = HTTPBearer(auto_error=False)


def _truncate_password(password: str) -> bytes:
    return password.encode("utf-8")[:BCRYPT_MAX_BYTES]


def hash_password(password: str) -> str:
    pwd_bytes = _truncate_password(password)
    return bcrypt.hashpw(pwd_bytes, bcrypt.gensalt(rounds=BCRYPT_ROUNDS)).decode("ascii")


def verify_password(plain: str, hashed: str) -> bool:
    pwd_bytes = _truncate_password(plain)
    return bcrypt.checkpw(pwd_bytes, hashed.encode("ascii"))


@dataclass(frozen=True)
class AuthSession:
    """Who is signed in, as carried by the bearer token."""
    user_id: str
    username: str

    def to_dict(self) -> dict:
        return {"user_id": self.user_id, "username": self.username}


def create_access_token(user: User) -> str:
    expire = datetime.utcnow() + timedelta(days=ACCESS_TOKEN_EXPIRE_DAYS)
    payload = {"sub": user.id, "username": user.username, "exp": expire}
    return jwt.encode(payload, SECRET_KEY, algorithm=ALGORITHM)


def decode_token(token: str) -> AuthSession | None:
    try:
        payload = jwt.decode(token, SECRET_KEY, algorithms=[ALGORITHM])
    except JWTError:
        return None
    user_id = payload.get("sub")
    if not user_id:
        return None
    return AuthSession(user_id=user_id, username=payload.get("username") or "")


def validate_username(username: str) -> bool:
    return bool(USERNAME_PATTERN.match(username))


def get_optional_session(
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
) -> AuthSession | None:
    """Session from the bearer token, or None when signed out or the token is bad."""
    if not credentials:
        return None
    return decode_token(credentials.credentials)


def get_current_session(
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
) -> AuthSession:
    if not credentials:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )
    session = decode_token(credentials.credentials)
    if not session:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
        )
    return session


def get_current_user(
    session: AuthSession = Depends(get_current_session),
    db: Session = Depends(get_db),
) -> User:
    user = db.query(User).filter(User.id == session.user_id).first()
    if not user:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="User not found")
    return user
