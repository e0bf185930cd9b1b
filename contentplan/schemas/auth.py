"""Auth schemas: CurrentUser."""

import uuid

from pydantic import BaseModel

from contentplan.models.enums import WorkspaceRole


class CurrentUser(BaseModel):
    """Lightweight user context extracted from the bearer token."""

    user_id: uuid.UUID
    workspace_id: uuid.UUID
    role: WorkspaceRole
