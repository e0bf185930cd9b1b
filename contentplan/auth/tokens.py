"""Bearer token verification.

Tokens are HS256 JWTs minted by the identity service with the shared
SECRET_KEY. Claims: ``sub`` (user id), ``wid`` (workspace id), ``role``.
"""

import uuid
from datetime import datetime, timedelta, timezone

import structlog
from jose import JWTError, jwt

from contentplan.core.config import settings
from contentplan.models.enums import WorkspaceRole

logger = structlog.get_logger()


def create_access_token(
    user_id: uuid.UUID,
    workspace_id: uuid.UUID,
    role: WorkspaceRole,
    ttl_seconds: int | None = None,
) -> str:
    now = datetime.now(timezone.utc)
    ttl = settings.ACCESS_TOKEN_TTL_SECONDS if ttl_seconds is None else ttl_seconds
    payload = {
        "sub": str(user_id),
        "wid": str(workspace_id),
        "role": role.value,
        "iat": int(now.timestamp()),
        "exp": int((now + timedelta(seconds=ttl)).timestamp()),
    }
    return jwt.encode(payload, settings.SECRET_KEY, algorithm=settings.JWT_ALGORITHM)


def verify_access_token(token: str) -> dict:
    """Decode and validate a token. Raises JWTError on any failure."""
    payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.JWT_ALGORITHM])
    for claim in ("sub", "wid", "role"):
        if not payload.get(claim):
            raise JWTError(f"Token missing {claim} claim")
    return payload
