"""FastAPI auth dependencies: get_current_user, require_role."""

import uuid

import sentry_sdk
import structlog
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError

from contentplan.auth.tokens import verify_access_token
from contentplan.models.enums import WorkspaceRole
from contentplan.schemas.auth import CurrentUser

logger = structlog.get_logger()

bearer_scheme = HTTPBearer(auto_error=True)

EDITOR_ROLES = [WorkspaceRole.OWNER, WorkspaceRole.ADMIN, WorkspaceRole.EDITOR]
ADMIN_ROLES = [WorkspaceRole.OWNER, WorkspaceRole.ADMIN]


async def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(bearer_scheme),
) -> CurrentUser:
    """Verify the bearer token and build the request's actor."""
    try:
        payload = verify_access_token(credentials.credentials)
        current_user = CurrentUser(
            user_id=uuid.UUID(payload["sub"]),
            workspace_id=uuid.UUID(payload["wid"]),
            role=WorkspaceRole(payload["role"]),
        )
    except (JWTError, ValueError) as e:
        logger.warning("jwt_verification_failed", error=str(e))
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
            headers={"WWW-Authenticate": "Bearer"},
        ) from e

    sentry_sdk.set_user({"id": str(current_user.user_id)})
    sentry_sdk.set_tag("workspace_id", str(current_user.workspace_id))

    return current_user


def require_role(allowed_roles: list[WorkspaceRole]):
    """
    Dependency factory: checks if current user has one of the allowed roles.

    Usage:
        @router.put("/documents/{id}", dependencies=[Depends(require_role(EDITOR_ROLES))])
    """

    async def _check_role(
        current_user: CurrentUser = Depends(get_current_user),
    ) -> CurrentUser:
        if current_user.role not in allowed_roles:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Role '{current_user.role.value}' not authorized. Required: {[r.value for r in allowed_roles]}",
            )
        return current_user

    return _check_role
