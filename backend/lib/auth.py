"""
Authentication utilities for JWT validation
"""
import logging
from typing import Optional

from fastapi import HTTPException, Header
from jose import JWTError, jwt

from adaptive_quiz.settings import QuizSettings
from .supabase_client import get_supabase_client

logger = logging.getLogger(__name__)

# Same secret Supabase signs its access tokens with; unset falls back to Supabase Auth
JWT_SECRET = QuizSettings.from_env().supabase_jwt_secret
JWT_ALGORITHM = "HS256"
JWT_AUDIENCE = "authenticated"


def _decode_locally(token: str, secret: str) -> dict:
    """Verify a Supabase-issued JWT with the project's JWT secret."""
    try:
        claims = jwt.decode(token, secret, algorithms=[JWT_ALGORITHM], audience=JWT_AUDIENCE)
    except JWTError as e:
        logger.warning(f"⚠️ [Auth] Rejected token: {e}")
        raise HTTPException(status_code=401, detail="Invalid or expired token")

    if not claims.get("sub"):
        raise HTTPException(status_code=401, detail="Token has no subject")

    return {"id": claims["sub"], "email": claims.get("email")}


def _lookup_with_supabase(token: str) -> dict:
    """Resolve the token's user through Supabase Auth."""
    try:
        user_response = get_supabase_client().auth.get_user(token)
    except Exception as e:
        logger.warning(f"⚠️ [Auth] Supabase token lookup failed: {e}")
        raise HTTPException(status_code=401, detail="Could not validate credentials")

    if not user_response or not user_response.user:
        raise HTTPException(status_code=401, detail="Invalid or expired token")

    return {"id": user_response.user.id, "email": user_response.user.email}


async def get_optional_user(authorization: Optional[str] = Header(None)) -> Optional[dict]:
    """
    Resolve the learner from the Authorization header.

    Args:
        authorization: Bearer token from Authorization header

    Returns:
        dict with id and email, or None when no header was sent

    Raises:
        HTTPException: If a token was sent but is malformed or invalid
    """
    if not authorization:
        return None

    if not authorization.startswith("Bearer "):
        raise HTTPException(status_code=401, detail="Invalid authorization header format")

    token = authorization[len("Bearer "):]

    if JWT_SECRET:
        return _decode_locally(token, JWT_SECRET)
    return _lookup_with_supabase(token)


async def get_current_user(authorization: Optional[str] = Header(None)) -> dict:
    """Like get_optional_user, but the header is mandatory."""
    user = await get_optional_user(authorization)
    if user is None:
        raise HTTPException(status_code=401, detail="Authorization header required")
    return user
