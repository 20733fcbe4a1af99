from planboard.models.base import Base
from planboard.models.custom_role import CustomRole
from planboard.models.organization import Organization
from planboard.models.project import Project, ProjectRoleAssignment, project_team_members
from planboard.models.user import User

__all__ = [
    "Base",
    "Organization",
    "User",
    "CustomRole",
    "Project",
    "ProjectRoleAssignment",
    "project_team_members",
]
