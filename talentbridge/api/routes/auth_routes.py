"""
Authentication Routes

POST /auth/register - Register new user
POST /auth/login - Login and get JWT token
GET /auth/me - Get current user info
"""

import logging

from fastapi import APIRouter, HTTPException, Depends
from sqlalchemy import text

from talentbridge.db.postgres import get_db_session, fetch_one
from talentbridge.core.auth import hash_password, verify_password, create_access_token, get_current_user
from talentbridge.schemas.schemas import (
    RegisterRequest, LoginRequest, TokenResponse, UserResponse, MessageResponse
)

router = APIRouter(prefix="/auth", tags=["Authentication"])
logger = logging.getLogger(__name__)


@router.post("/register", response_model=MessageResponse, status_code=201)
async def register(request: RegisterRequest):
    """
    Register a new user account.

    Employers and career center staff create or join an organization after login.
    """
    email = request.email.lower()
    with get_db_session() as db:
        result = db.execute(text("SELECT id FROM users WHERE LOWER(email) = :email"), {"email": email})
        if result.fetchone():
            raise HTTPException(status_code=400, detail="Email already registered")

        db.execute(
            text("""
                INSERT INTO users (email, name, password_hash, account_type)
                VALUES (:email, :name, :password_hash, :account_type)
            """),
            {
                "email": email,
                "name": request.name.strip(),
                "password_hash": hash_password(request.password),
                "account_type": request.account_type.value,
            }
        )

    logger.info("user_registered account_type=%s", request.account_type.value)
    return MessageResponse(message=f"Registered successfully as {request.account_type.value}. Please login.")


@router.post("/login", response_model=TokenResponse)
async def login(request: LoginRequest):
    """
    Login and receive JWT access token.

    Include token in requests: Authorization: Bearer <token>
    """
    user = fetch_one(
        "SELECT id, password_hash, account_type, is_active FROM users WHERE LOWER(email) = :email",
        {"email": request.email.lower()}
    )

    if not user or not verify_password(request.password, user["password_hash"]):
        raise HTTPException(status_code=401, detail="Invalid email or password")

    if not user["is_active"]:
        raise HTTPException(status_code=403, detail="Account deactivated")

    token = create_access_token(data={"sub": str(user["id"]), "account_type": user["account_type"]})
    return TokenResponse(access_token=token, user_id=user["id"], account_type=user["account_type"])


@router.get("/me", response_model=UserResponse)
async def get_me(user: dict = Depends(get_current_user)):
    """Get current authenticated user's info."""
    row = fetch_one(
        "SELECT id, email, name, account_type, is_active, created_at FROM users WHERE id = :id",
        {"id": user["user_id"]}
    )
    if not row:
        raise HTTPException(status_code=404, detail="User not found")
    return UserResponse(**row)
