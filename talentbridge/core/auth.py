"""
Authentication and tenant checks.

Accounts sign in with email and password (bcrypt via passlib) and receive a
JWT carrying the user id in "sub". Organization-scoped routes call
require_org_member / require_org_admin / require_org_type with the resolved
user.
"""

from datetime import datetime, timedelta, timezone
from typing import Optional
from jose import JWTError, jwt
from passlib.context import CryptContext
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials

from talentbridge.core.config import get_settings
from talentbridge.db.postgres import fetch_one

settings = get_settings()

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")
bearer_scheme = HTTPBearer()
optional_bearer_scheme = HTTPBearer(auto_error=False)

# Older student accounts were created as "student"
APPLICANT_ACCOUNT_TYPES = {"applicant", "student"}
ADMIN_ROLES = {"owner", "admin"}


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    return pwd_context.verify(plain_password, hashed_password)


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    """Sign claims with an expiry (default settings.jwt_expire_minutes)."""
    lifetime = expires_delta or timedelta(minutes=settings.jwt_expire_minutes)
    claims = {**data, "exp": datetime.now(timezone.utc) + lifetime}
    return jwt.encode(claims, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


def decode_token(token: str) -> Optional[dict]:
    """Claims of a valid token; None when the signature or expiry check fails."""
    try:
        return jwt.decode(token, settings.jwt_secret_key, algorithms=[settings.jwt_algorithm])
    except JWTError:
        return None


def load_user(user_id: int) -> Optional[dict]:
    return fetch_one(
        "SELECT id, email, name, account_type, is_active FROM users WHERE id = :id",
        {"id": user_id}
    )


def _user_from_token(token: str) -> dict:
    payload = decode_token(token) or {}
    user = load_user(int(payload["sub"])) if payload.get("sub") else None
    if not user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
            headers={"WWW-Authenticate": "Bearer"},
        )
    if not user["is_active"]:
        raise HTTPException(status_code=403, detail="Account deactivated")

    return {
        "user_id": user["id"],
        "email": user["email"],
        "name": user["name"],
        "account_type": user["account_type"],
    }


async def get_current_user(credentials: HTTPAuthorizationCredentials = Depends(bearer_scheme)) -> dict:
    """Dependency for routes that require a signed-in user."""
    return _user_from_token(credentials.credentials)


async def get_optional_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(optional_bearer_scheme)
) -> Optional[dict]:
    """Dependency - current user when a token is sent, None for anonymous callers."""
    if credentials is None:
        return None
    return _user_from_token(credentials.credentials)


async def get_current_applicant(user: dict = Depends(get_current_user)) -> dict:
    """Dependency - Require an applicant (student) account."""
    if user["account_type"] not in APPLICANT_ACCOUNT_TYPES:
        raise HTTPException(status_code=403, detail="Students only")
    return user


def require_org_member(org_id: int, user: dict) -> dict:
    """
    Verify the user belongs to the organization.

    Returns the organization row with the member's role attached.
    Raises 404 for unknown orgs and 403 for non-members.
    """
    row = fetch_one(
        """
        SELECT o.id, o.name, o.slug, o.type, m.role
        FROM organizations o
        LEFT JOIN memberships m ON m.org_id = o.id AND m.user_id = :uid
        WHERE o.id = :oid
        """,
        {"oid": org_id, "uid": user["user_id"]}
    )
    if not row:
        raise HTTPException(status_code=404, detail="Organization not found")
    if not row["role"]:
        raise HTTPException(status_code=403, detail="Not a member of this organization")
    return row


def require_org_admin(org_id: int, user: dict) -> dict:
    """Membership check that also requires the owner or admin role."""
    org = require_org_member(org_id, user)
    if org["role"] not in ADMIN_ROLES:
        raise HTTPException(status_code=403, detail="Organization admin role required")
    return org


def require_org_type(org: dict, org_type: str) -> dict:
    """Reject company-only endpoints for universities and vice versa."""
    if org["type"] != org_type:
        raise HTTPException(status_code=403, detail=f"Only {org_type} organizations can do this")
    return org
