"""
Authentication Routes

POST /auth/register - Register a student account (user + student profile)
POST /auth/login - Login and get JWT token
GET /auth/me - Get current user info
"""

import logging

from fastapi import APIRouter, HTTPException, Depends
from sqlalchemy import text

from app.db.postgres import get_db_session
from app.core.auth import hash_password, verify_password, create_access_token, get_current_user
from app.core.errors import ConflictError
from app.schemas.schemas import (
    RegisterRequest, LoginRequest, TokenResponse, UserResponse, MessageResponse
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["Authentication"])


@router.post("/register", response_model=MessageResponse, status_code=201)
async def register(request: RegisterRequest):
    """
    Register a new student account.

    The user row and its student profile are created together; login
    afterwards to get an access token.
    """
    with get_db_session() as db:
        # Check email exists
        result = db.execute(
            text("SELECT user_id FROM users WHERE email = :email"),
            {"email": request.email}
        )
        if result.fetchone():
            raise ConflictError("Email already registered")

        # Create user
        user_id = db.execute(
            text("""
                INSERT INTO users (email, password_hash, role, is_active)
                VALUES (:email, :password_hash, 'student', :active)
                RETURNING user_id
            """),
            {
                "email": request.email,
                "password_hash": hash_password(request.password),
                "active": True
            }
        ).fetchone()[0]

        db.execute(
            text("INSERT INTO students (user_id, full_name) VALUES (:user_id, :full_name)"),
            {"user_id": user_id, "full_name": request.full_name}
        )

    logger.info("Registered student user %s", user_id)
    return MessageResponse(message="Registered successfully. Please login.")


@router.post("/login", response_model=TokenResponse)
async def login(request: LoginRequest):
    """
    Login and receive JWT access token.

    Include token in requests: Authorization: Bearer <token>
    """
    with get_db_session() as db:
        result = db.execute(
            text("SELECT user_id, password_hash, role, is_active FROM users WHERE email = :email"),
            {"email": request.email}
        )
        user = result.fetchone()

    if not user:
        raise HTTPException(status_code=401, detail="Invalid email or password")

    user_id, password_hash, role, is_active = user

    if not is_active:
        raise HTTPException(status_code=403, detail="Account deactivated")

    if not verify_password(request.password, password_hash):
        raise HTTPException(status_code=401, detail="Invalid email or password")

    token = create_access_token(data={"sub": str(user_id), "role": role})

    return TokenResponse(access_token=token, user_id=user_id, role=role)


@router.get("/me", response_model=UserResponse)
async def get_me(account: dict = Depends(get_current_user)):
    """Get current authenticated user's info."""
    return UserResponse(**account)
