# app/core/auth.py
import logging
import uuid
from typing import Any

from fastapi import Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from jose import jwt, JWTError
from sqlmodel import Session

from app.core.config import get_settings
from app.core.errors import Forbidden, Unauthenticated
from app.database import get_session, transaction
from app.models.user import User
from app.schemas.user import Requester

logger = logging.getLogger(__name__)

settings = get_settings()

ROLES = ("user", "admin")

# HTTP Bearer scheme:
# - auto_error=False => a missing Authorization header reaches us as None,
#   so the 401 carries the same error body as every other failure.
bearer_scheme = HTTPBearer(auto_error=False)


def decode_access_token(token: str) -> dict[str, Any]:
    """
    Decode and verify an access token (JWT) issued by the auth service.

    Verification:
      - signature (JWT_ALG using JWT_SECRET)
      - expiration time (exp)
      - audience is NOT verified

    Raises:
        Unauthenticated: if token is invalid/expired.
    """
    try:
        return jwt.decode(
            token,
            settings.JWT_SECRET,
            algorithms=[settings.JWT_ALG],
            options={"verify_aud": False},
        )
    except JWTError:
        raise Unauthenticated("Invalid or expired token")


def requester_from_claims(claims: dict[str, Any]) -> Requester:
    """
    Build the Requester from decoded claims.

    'sub' must be a UUID; 'role' defaults to "user" when absent.
    """
    sub = claims.get("sub")
    role = claims.get("role", "user")
    if not sub:
        raise Unauthenticated("Token missing sub")
    try:
        user_id = uuid.UUID(str(sub))
    except ValueError:
        raise Unauthenticated("Invalid sub in token")
    if role not in ROLES:
        raise Unauthenticated("Invalid role in token")
    return Requester(user_id=user_id, role=role)


def _ensure_profile(
    session: Session,
    requester: Requester,
    claims: dict[str, Any],
) -> None:
    """
    Make sure a users row exists for the token subject.

    Orders and cart lines reference users.id, so a first request from a new
    account provisions a minimal profile from the 'email' claim.
    """
    if session.get(User, requester.user_id) is not None:
        return

    email = claims.get("email")
    if not email:
        raise Unauthenticated("Unknown user")

    with transaction(session):
        session.add(
            User(
                id=requester.user_id,
                email=email,
                name=email.split("@", 1)[0],
                role=requester.role,
            )
        )
    logger.info("Provisioned profile for user %s", requester.user_id)


def get_requester(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    session: Session = Depends(get_session),
) -> Requester | None:
    """
    Resolve the caller from the bearer token.

    Returns None for guests (no Authorization header).
    """
    if credentials is None:
        return None

    claims = decode_access_token(credentials.credentials)
    requester = requester_from_claims(claims)
    _ensure_profile(session, requester, claims)
    return requester


def require_auth(requester: Requester | None = Depends(get_requester)) -> Requester:
    """
    Enforce authentication. Guests are rejected with 401.
    """
    if requester is None:
        raise Unauthenticated()
    return requester


def require_admin(requester: Requester = Depends(require_auth)) -> Requester:
    """
    Enforce admin role (403 otherwise).
    """
    if not requester.is_admin:
        raise Forbidden("Admin access required")
    return requester


def require_user(requester: Requester = Depends(require_auth)) -> Requester:
    """
    Enforce that only customers (role='user') can access a route.

    Use this for:
      - cart endpoints
      - checkout endpoints
    Admins will be rejected with 403.
    """
    if requester.role != "user":
        raise Forbidden("Customer access required")
    return requester
