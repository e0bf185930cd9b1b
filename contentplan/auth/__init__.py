"""Auth package: bearer token verification and role dependencies."""

from contentplan.auth.dependencies import get_current_user, require_role
from contentplan.auth.tokens import create_access_token, verify_access_token

__all__ = [
    "create_access_token",
    "get_current_user",
    "require_role",
    "verify_access_token",
]
