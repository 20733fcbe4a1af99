"""Wire format of a resolved permission snapshot.

Shared by the ``GET /auth/permissions`` endpoint and the client-side
``PermissionStore`` so both ends agree on one serialized shape.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class PermissionSnapshot(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    user_id: str | None = None
    global_permissions: list[str] = Field(default_factory=list)
    project_permissions: dict[str, list[str]] = Field(default_factory=dict)
    project_roles: dict[str, str] = Field(default_factory=dict)
    user_role: str
    accessible_projects: list[str] = Field(default_factory=list)

    def is_empty(self) -> bool:
        """True when the user holds no global and no project permissions."""
        return not self.global_permissions and not self.project_permissions

    def to_wire(self) -> dict:
        return self.model_dump(by_alias=True)


class CustomRoleSummary(BaseModel):
    id: str
    name: str
    permissions: list[str]
