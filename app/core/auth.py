"""
Authentication Utility - JWT and Password handling.

Provides:
- Password hashing with bcrypt
- JWT token creation/verification
- FastAPI dependencies resolving the token to an account and its student profile
"""

from datetime import datetime, timedelta, timezone
from typing import Optional
from jose import JWTError, jwt
from passlib.context import CryptContext
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy import text

from app.core.config import get_settings
from app.core.errors import ForbiddenError, NotFoundError
from app.db.postgres import get_db_session

settings = get_settings()

# Password hashing
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

# Bearer token extractor (auto_error off so a missing token is a 401, not a 403)
bearer_scheme = HTTPBearer(auto_error=False)


def hash_password(password: str) -> str:
    """Hash password with bcrypt."""
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify password against hash."""
    return pwd_context.verify(plain_password, hashed_password)


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    """Create JWT access token."""
    to_encode = data.copy()
    expire = datetime.now(timezone.utc) + (expires_delta or timedelta(minutes=settings.jwt_expire_minutes))
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


def decode_token(token: str) -> Optional[dict]:
    """Decode and verify JWT token."""
    try:
        return jwt.decode(token, settings.jwt_secret_key, algorithms=[settings.jwt_algorithm])
    except JWTError:
        return None


def _load_account(user_id: int) -> Optional[dict]:
    """User row joined with the student profile (profile fields None for non-students)."""
    with get_db_session() as db:
        row = db.execute(
            text("""
                SELECT u.user_id, u.email, u.role, u.is_active, u.created_at,
                       s.student_id, s.full_name
                FROM users u LEFT JOIN students s ON s.user_id = u.user_id
                WHERE u.user_id = :id
            """),
            {"id": user_id}
        ).mappings().fetchone()
    return dict(row) if row else None


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme)
) -> dict:
    """
    FastAPI dependency - the account behind the bearer token.

    Returns user_id, email, role, is_active, created_at, student_id, full_name.
    """
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Invalid or expired token",
        headers={"WWW-Authenticate": "Bearer"},
    )

    payload = decode_token(credentials.credentials) if credentials else None
    subject = (payload or {}).get("sub")
    if not subject or not str(subject).isdigit():
        raise credentials_exception

    account = _load_account(int(subject))
    if account is None:
        raise credentials_exception
    if not account["is_active"]:
        raise ForbiddenError("Account deactivated")
    return account


async def get_current_student(account: dict = Depends(get_current_user)) -> dict:
    """Dependency for /plans routes: plans are owned by student profiles."""
    if account["role"] != "student":
        raise ForbiddenError("Students only")
    if account["student_id"] is None:
        raise NotFoundError("Student profile not found")
    return account
