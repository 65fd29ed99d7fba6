"""
FastAPI dependencies.

Authentication and access to the pipeline context.
"""

from typing import Optional
from uuid import UUID

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from jose import jwt, JWTError

from shared.logging import get_logger
from api_gateway.context import PipelineContext

logger = get_logger(__name__)

# HTTP Bearer token scheme
security = HTTPBearer(auto_error=False)  # Don't auto-raise on missing token


def get_context(request: Request) -> PipelineContext:
    """Pipeline context built by the application lifespan."""
    return request.app.state.ctx


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    ctx: PipelineContext = Depends(get_context)
) -> dict:
    """
    Validate the Supabase JWT and return the current user.

    Args:
        credentials: HTTP Bearer token credentials

    Returns:
        Dictionary with user_id (and email when the token carries one)

    Raises:
        HTTPException: If the token is missing or invalid
    """
    if not credentials or not credentials.credentials:
        logger.warning("No token provided in Authorization header")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing authentication token",
            headers={"WWW-Authenticate": "Bearer"}
        )

    secret = ctx.settings.supabase_jwt_secret
    if not secret:
        logger.error("SUPABASE_JWT_SECRET not configured, cannot validate tokens")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authentication is not configured",
            headers={"WWW-Authenticate": "Bearer"}
        )

    try:
        payload = jwt.decode(
            credentials.credentials,
            secret,
            algorithms=["HS256"],
            options={"verify_aud": False}  # Supabase tokens don't include audience claim
        )
    except JWTError as e:
        logger.warning("JWT validation failed", extra={"error_type": type(e).__name__, "error": str(e)})
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
            headers={"WWW-Authenticate": "Bearer"}
        )

    user_id = payload.get("sub")  # Supabase uses "sub" for user_id
    try:
        UUID(str(user_id))
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token: missing user_id",
            headers={"WWW-Authenticate": "Bearer"}
        )

    user_data = {"user_id": user_id}
    if payload.get("email"):
        user_data["email"] = payload["email"]
    return user_data
