"""Permission registry: single source of truth for permissions, roles and scopes."""

from __future__ import annotations

import enum


class PermissionCategory(str, enum.Enum):
    SYSTEM = "system"
    USER = "user"
    ORGANIZATION = "organization"
    PROJECT = "project"
    TASK = "task"
    TEAM = "team"
    TIME_TRACKING = "time_tracking"
    FINANCIAL = "financial"
    REPORTING = "reporting"
    SETTINGS = "settings"
    EPIC = "epic"
    SPRINT = "sprint"
    STORY = "story"
    CALENDAR = "calendar"
    KANBAN = "kanban"
    BACKLOG = "backlog"
    TEST_MANAGEMENT = "test_management"
    DOCUMENTATION = "documentation"


class Permission(str, enum.Enum):
    # System
    SYSTEM_ADMIN = "system:admin"
    SYSTEM_MONITOR = "system:monitor"
    SYSTEM_MAINTENANCE = "system:maintenance"

    # User management
    USER_CREATE = "user:create"
    USER_READ = "user:read"
    USER_UPDATE = "user:update"
    USER_DELETE = "user:delete"
    USER_INVITE = "user:invite"
    USER_ACTIVATE = "user:activate"
    USER_DEACTIVATE = "user:deactivate"
    USER_MANAGE_ROLES = "user:manage_roles"

    # Organization
    ORGANIZATION_READ = "organization:read"
    ORGANIZATION_UPDATE = "organization:update"
    ORGANIZATION_DELETE = "organization:delete"
    ORGANIZATION_MANAGE_SETTINGS = "organization:manage_settings"
    ORGANIZATION_MANAGE_BILLING = "organization:manage_billing"

    # Projects
    PROJECT_CREATE = "project:create"
    PROJECT_READ = "project:read"
    PROJECT_UPDATE = "project:update"
    PROJECT_DELETE = "project:delete"
    PROJECT_MANAGE_TEAM = "project:manage_team"
    PROJECT_MANAGE_BUDGET = "project:manage_budget"
    PROJECT_ARCHIVE = "project:archive"
    PROJECT_RESTORE = "project:restore"
    PROJECT_VIEW_ALL = "project:view_all"

    # Tasks
    TASK_CREATE = "task:create"
    TASK_READ = "task:read"
    TASK_UPDATE = "task:update"
    TASK_DELETE = "task:delete"
    TASK_ASSIGN = "task:assign"
    TASK_CHANGE_STATUS = "task:change_status"
    TASK_MANAGE_COMMENTS = "task:manage_comments"
    TASK_MANAGE_ATTACHMENTS = "task:manage_attachments"
    TASK_VIEW_ALL = "task:view_all"
    TASK_EDIT_ALL = "task:edit_all"
    TASK_DELETE_ALL = "task:delete_all"

    # Team
    TEAM_READ = "team:read"
    TEAM_INVITE = "team:invite"
    TEAM_EDIT = "team:edit"
    TEAM_DELETE = "team:delete"
    TEAM_REMOVE = "team:remove"
    TEAM_MANAGE_PERMISSIONS = "team:manage_permissions"
    TEAM_VIEW_ACTIVITY = "team:view_activity"
    TEAM_MEMBER_WIDGET_VIEW = "team_member_widget:view"

    # Time tracking
    TIME_TRACKING_CREATE = "time_tracking:create"
    TIME_TRACKING_READ = "time_tracking:read"
    TIME_TRACKING_UPDATE = "time_tracking:update"
    TIME_TRACKING_DELETE = "time_tracking:delete"
    TIME_TRACKING_APPROVE = "time_tracking:approve"
    TIME_TRACKING_EXPORT = "time_tracking:export"
    TIME_TRACKING_VIEW_ALL = "time_tracking:view_all"
    TIME_TRACKING_VIEW_ASSIGNED = "time_tracking:view_assigned"
    TIME_TRACKING_EMPLOYEE_FILTER_READ = "time_tracking:employee_filter:read"
    TIME_TRACKING_VIEW_ALL_TIMER = "time_tracking:view_all_timer"
    TIME_TRACKING_BULK_UPLOAD_ALL = "time_tracking:bulk_upload_all"

    # Financial
    FINANCIAL_READ = "financial:read"
    FINANCIAL_MANAGE_BUDGET = "financial:manage_budget"
    BUDGET_HANDLING = "financial:budget_handling"
    FINANCIAL_CREATE_EXPENSE = "financial:create_expense"
    FINANCIAL_APPROVE_EXPENSE = "financial:approve_expense"
    FINANCIAL_CREATE_INVOICE = "financial:create_invoice"
    FINANCIAL_SEND_INVOICE = "financial:send_invoice"
    FINANCIAL_MANAGE_PAYMENTS = "financial:manage_payments"

    # Reporting
    REPORTING_VIEW = "reporting:view"
    REPORTING_CREATE = "reporting:create"
    REPORTING_EXPORT = "reporting:export"
    REPORTING_SHARE = "reporting:share"
    TIME_LOG_REPORT_ACCESS = "time_tracking:report_access"

    # Settings
    SETTINGS_VIEW = "settings:view"
    SETTINGS_UPDATE = "settings:update"
    SETTINGS_MANAGE_EMAIL = "settings:manage_email"
    SETTINGS_MANAGE_DATABASE = "settings:manage_database"
    SETTINGS_MANAGE_SECURITY = "settings:manage_security"

    # Epics
    EPIC_CREATE = "epic:create"
    EPIC_VIEW = "epic:view"
    EPIC_READ = "epic:read"
    EPIC_UPDATE = "epic:update"
    EPIC_EDIT = "epic:edit"
    EPIC_DELETE = "epic:delete"
    EPIC_REMOVE = "epic:remove"
    EPIC_VIEW_ALL = "epic:view_all"

    # Sprints
    SPRINT_CREATE = "sprint:create"
    SPRINT_VIEW = "sprint:view"
    SPRINT_READ = "sprint:read"
    SPRINT_UPDATE = "sprint:update"
    SPRINT_EDIT = "sprint:edit"
    SPRINT_DELETE = "sprint:delete"
    SPRINT_MANAGE = "sprint:manage"
    SPRINT_VIEW_ALL = "sprint:view_all"
    SPRINT_START = "sprint:start"
    SPRINT_COMPLETE = "sprint:complete"

    # Stories
    STORY_CREATE = "story:create"
    STORY_READ = "story:read"
    STORY_UPDATE = "story:update"
    STORY_DELETE = "story:delete"
    STORY_VIEW_ALL = "story:view_all"
    STORY_MANAGE_ALL = "story:manage_all"

    # Calendar
    CALENDAR_READ = "calendar:read"
    CALENDAR_CREATE = "calendar:create"
    CALENDAR_UPDATE = "calendar:update"
    CALENDAR_DELETE = "calendar:delete"

    # Sprint events
    SPRINT_EVENT_VIEW_ALL = "sprint_event:view_all"
    SPRINT_EVENT_VIEW = "sprint_event:view"

    # Kanban
    KANBAN_READ = "kanban:read"
    KANBAN_MANAGE = "kanban:manage"

    # Backlog
    BACKLOG_READ = "backlog:read"
    BACKLOG_MANAGE = "backlog:manage"

    # Test management
    TEST_SUITE_CREATE = "test_suite:create"
    TEST_SUITE_READ = "test_suite:read"
    TEST_SUITE_UPDATE = "test_suite:update"
    TEST_SUITE_DELETE = "test_suite:delete"
    TEST_CASE_CREATE = "test_case:create"
    TEST_CASE_READ = "test_case:read"
    TEST_CASE_UPDATE = "test_case:update"
    TEST_CASE_DELETE = "test_case:delete"
    TEST_PLAN_CREATE = "test_plan:create"
    TEST_PLAN_READ = "test_plan:read"
    TEST_PLAN_UPDATE = "test_plan:update"
    TEST_PLAN_DELETE = "test_plan:delete"
    TEST_PLAN_MANAGE = "test_plan:manage"
    TEST_EXECUTION_CREATE = "test_execution:create"
    TEST_EXECUTION_READ = "test_execution:read"
    TEST_EXECUTION_UPDATE = "test_execution:update"
    TEST_REPORT_VIEW = "test_report:view"
    TEST_REPORT_EXPORT = "test_report:export"
    TEST_MANAGE = "test:manage"

    # Documentation
    DOCUMENTATION_VIEW = "documentation:view"
    DOCUMENTATION_SEARCH = "documentation:search"
    DOCUMENTATION_CREATE = "documentation:create"
    DOCUMENTATION_UPDATE = "documentation:update"
    DOCUMENTATION_DELETE = "documentation:delete"
    DOCUMENTATION_MANAGE_PERMISSIONS = "documentation:manage_permissions"


class Role(str, enum.Enum):
    SUPER_ADMIN = "super_admin"
    ADMIN = "admin"
    HUMAN_RESOURCE = "human_resource"
    PROJECT_MANAGER = "project_manager"
    TEAM_MEMBER = "team_member"
    CLIENT = "client"
    VIEWER = "viewer"
    QA_ENGINEER = "qa_engineer"
    TESTER = "tester"


class ProjectRole(str, enum.Enum):
    PROJECT_MANAGER = "project_manager"
    PROJECT_MEMBER = "project_member"
    PROJECT_VIEWER = "project_viewer"
    PROJECT_CLIENT = "project_client"
    PROJECT_QA_LEAD = "project_qa_lead"
    PROJECT_TESTER = "project_tester"


class PermissionScope(str, enum.Enum):
    GLOBAL = "global"  # organization-wide
    PROJECT = "project"  # per project
    OWN = "own"  # caller's own resources


def permission_key(permission: Permission | str) -> str:
    """Plain string value of a permission (enum member or raw string)."""
    if isinstance(permission, enum.Enum):
        return permission.value
    return str(permission)


# ---------------------------------------------------------------------------
# Catalog grouped by category (served by the permission-schema endpoint)
# ---------------------------------------------------------------------------

_CATEGORY_LABELS: dict[PermissionCategory, str] = {
    PermissionCategory.SYSTEM: "System",
    PermissionCategory.USER: "Users",
    PermissionCategory.ORGANIZATION: "Organization",
    PermissionCategory.PROJECT: "Projects",
    PermissionCategory.TASK: "Tasks",
    PermissionCategory.TEAM: "Team",
    PermissionCategory.TIME_TRACKING: "Time Tracking",
    PermissionCategory.FINANCIAL: "Financial",
    PermissionCategory.REPORTING: "Reporting",
    PermissionCategory.SETTINGS: "Settings",
    PermissionCategory.EPIC: "Epics",
    PermissionCategory.SPRINT: "Sprints",
    PermissionCategory.STORY: "Stories",
    PermissionCategory.CALENDAR: "Calendar",
    PermissionCategory.KANBAN: "Kanban",
    PermissionCategory.BACKLOG: "Backlog",
    PermissionCategory.TEST_MANAGEMENT: "Test Management",
    PermissionCategory.DOCUMENTATION: "Documentation",
}

# Prefixes that don't match a category value one-to-one
_PREFIX_TO_CATEGORY: dict[str, PermissionCategory] = {
    "team_member_widget": PermissionCategory.TEAM,
    "sprint_event": PermissionCategory.SPRINT,
    "test_suite": PermissionCategory.TEST_MANAGEMENT,
    "test_case": PermissionCategory.TEST_MANAGEMENT,
    "test_plan": PermissionCategory.TEST_MANAGEMENT,
    "test_execution": PermissionCategory.TEST_MANAGEMENT,
    "test_report": PermissionCategory.TEST_MANAGEMENT,
    "test": PermissionCategory.TEST_MANAGEMENT,
}


def get_permission_category(permission: Permission) -> PermissionCategory:
    prefix = permission.value.split(":", 1)[0]
    if prefix in _PREFIX_TO_CATEGORY:
        return _PREFIX_TO_CATEGORY[prefix]
    return PermissionCategory(prefix)


def _describe(permission: Permission) -> str:
    category, _, action = permission.value.partition(":")
    return f"{action.replace(':', ' ').replace('_', ' ').capitalize()} ({category.replace('_', ' ')})"


PERMISSION_CATALOG: dict[str, dict] = {
    category.value: {"label": label, "permissions": {}}
    for category, label in _CATEGORY_LABELS.items()
}
for _perm in Permission:
    PERMISSION_CATALOG[get_permission_category(_perm).value]["permissions"][_perm.value] = (
        _describe(_perm)
    )

# Flat set for quick validation
ALL_PERMISSION_KEYS: frozenset[str] = frozenset(p.value for p in Permission)

# ---------------------------------------------------------------------------
# Organization role → permissions
# ---------------------------------------------------------------------------

_READ_ONLY_BASE: list[Permission] = [
    Permission.USER_READ,
    Permission.ORGANIZATION_READ,
    Permission.PROJECT_READ,
    Permission.TASK_READ,
    Permission.TEAM_READ,
    Permission.TIME_TRACKING_READ,
    Permission.FINANCIAL_READ,
    Permission.REPORTING_VIEW,
    Permission.EPIC_VIEW,
    Permission.EPIC_READ,
    Permission.SPRINT_VIEW,
    Permission.SPRINT_READ,
    Permission.STORY_READ,
    Permission.CALENDAR_READ,
    Permission.KANBAN_READ,
    Permission.BACKLOG_READ,
    Permission.DOCUMENTATION_VIEW,
    Permission.DOCUMENTATION_SEARCH,
]

_TEST_MANAGEMENT_FULL: list[Permission] = [
    Permission.TEST_SUITE_CREATE,
    Permission.TEST_SUITE_READ,
    Permission.TEST_SUITE_UPDATE,
    Permission.TEST_SUITE_DELETE,
    Permission.TEST_CASE_CREATE,
    Permission.TEST_CASE_READ,
    Permission.TEST_CASE_UPDATE,
    Permission.TEST_CASE_DELETE,
    Permission.TEST_PLAN_CREATE,
    Permission.TEST_PLAN_READ,
    Permission.TEST_PLAN_UPDATE,
    Permission.TEST_PLAN_DELETE,
    Permission.TEST_PLAN_MANAGE,
    Permission.TEST_EXECUTION_CREATE,
    Permission.TEST_EXECUTION_READ,
    Permission.TEST_EXECUTION_UPDATE,
    Permission.TEST_REPORT_VIEW,
    Permission.TEST_REPORT_EXPORT,
]

_TEST_EXECUTION_ONLY: list[Permission] = [
    Permission.TEST_SUITE_READ,
    Permission.TEST_CASE_READ,
    Permission.TEST_PLAN_READ,
    Permission.TEST_EXECUTION_CREATE,
    Permission.TEST_EXECUTION_READ,
    Permission.TEST_EXECUTION_UPDATE,
    Permission.TEST_REPORT_VIEW,
]

_USER_MANAGEMENT: list[Permission] = [
    Permission.USER_CREATE,
    Permission.USER_READ,
    Permission.USER_UPDATE,
    Permission.USER_DELETE,
    Permission.USER_INVITE,
    Permission.USER_ACTIVATE,
    Permission.USER_DEACTIVATE,
    Permission.USER_MANAGE_ROLES,
]

_ORGANIZATION_MANAGEMENT: list[Permission] = [
    Permission.ORGANIZATION_READ,
    Permission.ORGANIZATION_UPDATE,
    Permission.ORGANIZATION_MANAGE_SETTINGS,
    Permission.ORGANIZATION_MANAGE_BILLING,
]

_PROJECT_MANAGEMENT: list[Permission] = [
    Permission.PROJECT_CREATE,
    Permission.PROJECT_READ,
    Permission.PROJECT_UPDATE,
    Permission.PROJECT_DELETE,
    Permission.PROJECT_MANAGE_TEAM,
    Permission.PROJECT_MANAGE_BUDGET,
    Permission.PROJECT_ARCHIVE,
    Permission.PROJECT_RESTORE,
    Permission.PROJECT_VIEW_ALL,
]

_TASK_WORK: list[Permission] = [
    Permission.TASK_CREATE,
    Permission.TASK_READ,
    Permission.TASK_UPDATE,
    Permission.TASK_DELETE,
    Permission.TASK_ASSIGN,
    Permission.TASK_CHANGE_STATUS,
    Permission.TASK_MANAGE_COMMENTS,
    Permission.TASK_MANAGE_ATTACHMENTS,
]

_TASK_ALL: list[Permission] = [
    Permission.TASK_VIEW_ALL,
    Permission.TASK_EDIT_ALL,
    Permission.TASK_DELETE_ALL,
]

_SETTINGS_ADMIN: list[Permission] = [
    Permission.SETTINGS_UPDATE,
    Permission.SETTINGS_MANAGE_EMAIL,
    Permission.SETTINGS_MANAGE_DATABASE,
    Permission.SETTINGS_MANAGE_SECURITY,
]

_EPIC_MANAGEMENT: list[Permission] = [
    Permission.EPIC_CREATE,
    Permission.EPIC_VIEW,
    Permission.EPIC_READ,
    Permission.EPIC_EDIT,
    Permission.EPIC_UPDATE,
    Permission.EPIC_DELETE,
    Permission.EPIC_REMOVE,
    Permission.EPIC_VIEW_ALL,
]

_SPRINT_MANAGEMENT: list[Permission] = [
    Permission.SPRINT_CREATE,
    Permission.SPRINT_VIEW,
    Permission.SPRINT_READ,
    Permission.SPRINT_UPDATE,
    Permission.SPRINT_EDIT,
    Permission.SPRINT_DELETE,
    Permission.SPRINT_MANAGE,
    Permission.SPRINT_VIEW_ALL,
    Permission.SPRINT_START,
    Permission.SPRINT_COMPLETE,
    Permission.SPRINT_EVENT_VIEW_ALL,
    Permission.SPRINT_EVENT_VIEW,
]

_PLANNING_TOOLS: list[Permission] = [
    Permission.CALENDAR_READ,
    Permission.CALENDAR_CREATE,
    Permission.CALENDAR_UPDATE,
    Permission.CALENDAR_DELETE,
    Permission.KANBAN_READ,
    Permission.KANBAN_MANAGE,
    Permission.BACKLOG_READ,
    Permission.BACKLOG_MANAGE,
]

_REPORTING_FULL: list[Permission] = [
    Permission.REPORTING_VIEW,
    Permission.REPORTING_CREATE,
    Permission.REPORTING_EXPORT,
    Permission.REPORTING_SHARE,
    Permission.TIME_LOG_REPORT_ACCESS,
]

ROLE_PERMISSIONS: dict[Role, list[Permission]] = {
    Role.SUPER_ADMIN: list(Permission),
    Role.ADMIN: [
        *_USER_MANAGEMENT,
        *_ORGANIZATION_MANAGEMENT,
        *_PROJECT_MANAGEMENT,
        *_TASK_WORK,
        *_TASK_ALL,
        Permission.TEAM_READ,
        Permission.TEAM_INVITE,
        Permission.TEAM_EDIT,
        Permission.TEAM_REMOVE,
        Permission.TEAM_MANAGE_PERMISSIONS,
        Permission.TEAM_VIEW_ACTIVITY,
        Permission.TEAM_MEMBER_WIDGET_VIEW,
        Permission.TIME_TRACKING_CREATE,
        Permission.TIME_TRACKING_READ,
        Permission.TIME_TRACKING_DELETE,
        Permission.TIME_TRACKING_APPROVE,
        Permission.TIME_TRACKING_EXPORT,
        Permission.TIME_TRACKING_VIEW_ALL,
        Permission.TIME_TRACKING_EMPLOYEE_FILTER_READ,
        Permission.TIME_TRACKING_VIEW_ALL_TIMER,
        Permission.FINANCIAL_READ,
        Permission.FINANCIAL_MANAGE_BUDGET,
        Permission.BUDGET_HANDLING,
        Permission.FINANCIAL_CREATE_EXPENSE,
        Permission.FINANCIAL_APPROVE_EXPENSE,
        Permission.FINANCIAL_CREATE_INVOICE,
        Permission.FINANCIAL_SEND_INVOICE,
        Permission.FINANCIAL_MANAGE_PAYMENTS,
        Permission.REPORTING_CREATE,
        Permission.REPORTING_EXPORT,
        Permission.REPORTING_SHARE,
        Permission.TIME_LOG_REPORT_ACCESS,
        Permission.SETTINGS_VIEW,
        *_SETTINGS_ADMIN,
        *_EPIC_MANAGEMENT,
        *_SPRINT_MANAGEMENT,
        Permission.STORY_CREATE,
        Permission.STORY_READ,
        Permission.STORY_UPDATE,
        Permission.STORY_DELETE,
        Permission.STORY_VIEW_ALL,
        *_PLANNING_TOOLS,
        *_TEST_MANAGEMENT_FULL,
        Permission.TEST_MANAGE,
        Permission.DOCUMENTATION_VIEW,
        Permission.DOCUMENTATION_SEARCH,
        Permission.DOCUMENTATION_CREATE,
        Permission.DOCUMENTATION_UPDATE,
        Permission.DOCUMENTATION_DELETE,
        Permission.DOCUMENTATION_MANAGE_PERMISSIONS,
    ],
    Role.HUMAN_RESOURCE: [
        *_USER_MANAGEMENT,
        *_ORGANIZATION_MANAGEMENT,
        *_PROJECT_MANAGEMENT,
        *_TASK_WORK,
        Permission.TEAM_READ,
        Permission.TEAM_INVITE,
        Permission.TEAM_DELETE,
        Permission.TEAM_REMOVE,
        Permission.TEAM_MANAGE_PERMISSIONS,
        Permission.TEAM_VIEW_ACTIVITY,
        Permission.TEAM_MEMBER_WIDGET_VIEW,
        Permission.TIME_TRACKING_CREATE,
        Permission.TIME_TRACKING_READ,
        Permission.TIME_TRACKING_UPDATE,
        Permission.TIME_TRACKING_DELETE,
        Permission.TIME_TRACKING_APPROVE,
        Permission.TIME_TRACKING_EXPORT,
        Permission.TIME_TRACKING_VIEW_ASSIGNED,
        Permission.TIME_TRACKING_VIEW_ALL,
        Permission.TIME_TRACKING_EMPLOYEE_FILTER_READ,
        Permission.TIME_TRACKING_VIEW_ALL_TIMER,
        Permission.TIME_TRACKING_BULK_UPLOAD_ALL,
        Permission.FINANCIAL_READ,
        Permission.FINANCIAL_MANAGE_BUDGET,
        Permission.BUDGET_HANDLING,
        Permission.FINANCIAL_CREATE_EXPENSE,
        Permission.FINANCIAL_APPROVE_EXPENSE,
        Permission.FINANCIAL_CREATE_INVOICE,
        Permission.FINANCIAL_SEND_INVOICE,
        *_REPORTING_FULL,
        Permission.SETTINGS_VIEW,
        *_SETTINGS_ADMIN,
        *_EPIC_MANAGEMENT,
        *_SPRINT_MANAGEMENT,
        Permission.STORY_CREATE,
        Permission.STORY_READ,
        Permission.STORY_UPDATE,
        Permission.STORY_DELETE,
        Permission.STORY_VIEW_ALL,
        Permission.STORY_MANAGE_ALL,
        *_PLANNING_TOOLS,
        *_TEST_MANAGEMENT_FULL,
        Permission.DOCUMENTATION_VIEW,
        Permission.DOCUMENTATION_SEARCH,
        Permission.DOCUMENTATION_CREATE,
        Permission.DOCUMENTATION_UPDATE,
        Permission.DOCUMENTATION_DELETE,
    ],
    Role.PROJECT_MANAGER: [
        *_USER_MANAGEMENT,
        *_ORGANIZATION_MANAGEMENT,
        *_PROJECT_MANAGEMENT,
        *_TASK_WORK,
        *_TASK_ALL,
        Permission.TEAM_READ,
        Permission.TEAM_INVITE,
        Permission.TEAM_DELETE,
        Permission.TEAM_REMOVE,
        Permission.TEAM_MANAGE_PERMISSIONS,
        Permission.TEAM_VIEW_ACTIVITY,
        Permission.TEAM_MEMBER_WIDGET_VIEW,
        Permission.TIME_TRACKING_CREATE,
        Permission.TIME_TRACKING_READ,
        Permission.TIME_TRACKING_DELETE,
        Permission.TIME_TRACKING_APPROVE,
        Permission.TIME_TRACKING_EXPORT,
        Permission.TIME_TRACKING_VIEW_ALL,
        Permission.TIME_TRACKING_EMPLOYEE_FILTER_READ,
        Permission.TIME_TRACKING_VIEW_ALL_TIMER,
        Permission.TIME_TRACKING_BULK_UPLOAD_ALL,
        Permission.FINANCIAL_READ,
        Permission.FINANCIAL_MANAGE_BUDGET,
        Permission.FINANCIAL_CREATE_EXPENSE,
        Permission.FINANCIAL_APPROVE_EXPENSE,
        Permission.FINANCIAL_CREATE_INVOICE,
        Permission.FINANCIAL_SEND_INVOICE,
        Permission.FINANCIAL_MANAGE_PAYMENTS,
        Permission.TEST_MANAGE,
        *_REPORTING_FULL,
        *_SETTINGS_ADMIN,
        *_EPIC_MANAGEMENT,
        *_SPRINT_MANAGEMENT,
        Permission.STORY_CREATE,
        Permission.STORY_READ,
        Permission.STORY_UPDATE,
        Permission.STORY_DELETE,
        Permission.STORY_VIEW_ALL,
        Permission.STORY_MANAGE_ALL,
        *_PLANNING_TOOLS,
        *_TEST_MANAGEMENT_FULL,
        Permission.DOCUMENTATION_VIEW,
        Permission.DOCUMENTATION_SEARCH,
        Permission.DOCUMENTATION_CREATE,
        Permission.DOCUMENTATION_UPDATE,
        Permission.DOCUMENTATION_DELETE,
    ],
    Role.TEAM_MEMBER: [
        *_READ_ONLY_BASE,
        # Assigned tasks and own time
        Permission.TASK_UPDATE,
        Permission.TASK_CHANGE_STATUS,
        Permission.TASK_MANAGE_COMMENTS,
        Permission.TIME_TRACKING_CREATE,
        Permission.TIME_TRACKING_DELETE,
        Permission.SPRINT_EVENT_VIEW,
    ],
    Role.CLIENT: list(_READ_ONLY_BASE),
    Role.VIEWER: list(_READ_ONLY_BASE),
    Role.QA_ENGINEER: [
        *(p for p in _READ_ONLY_BASE if p is not Permission.EPIC_VIEW),
        # Bug management
        Permission.TASK_CREATE,
        Permission.TASK_UPDATE,
        Permission.TASK_ASSIGN,
        Permission.TASK_CHANGE_STATUS,
        Permission.TASK_MANAGE_COMMENTS,
        Permission.TASK_MANAGE_ATTACHMENTS,
        *_TEST_MANAGEMENT_FULL,
    ],
    Role.TESTER: [
        *(p for p in _READ_ONLY_BASE if p is not Permission.EPIC_VIEW),
        # Bug reporting
        Permission.TASK_CREATE,
        Permission.TASK_UPDATE,
        Permission.TASK_MANAGE_COMMENTS,
        Permission.TASK_MANAGE_ATTACHMENTS,
        *_TEST_EXECUTION_ONLY,
    ],
}

# ---------------------------------------------------------------------------
# Project role → permissions
# ---------------------------------------------------------------------------

_PROJECT_READ_BASE: list[Permission] = [
    Permission.PROJECT_READ,
    Permission.TASK_READ,
    Permission.TEAM_READ,
    Permission.TIME_TRACKING_READ,
    Permission.FINANCIAL_READ,
    Permission.EPIC_READ,
    Permission.SPRINT_VIEW,
    Permission.SPRINT_READ,
    Permission.STORY_READ,
    Permission.CALENDAR_READ,
    Permission.KANBAN_READ,
    Permission.BACKLOG_READ,
]

PROJECT_ROLE_PERMISSIONS: dict[ProjectRole, list[Permission]] = {
    ProjectRole.PROJECT_MANAGER: [
        Permission.PROJECT_READ,
        Permission.PROJECT_UPDATE,
        Permission.PROJECT_MANAGE_TEAM,
        Permission.PROJECT_MANAGE_BUDGET,
        *_TASK_WORK,
        Permission.TEAM_READ,
        Permission.TEAM_INVITE,
        Permission.TEAM_REMOVE,
        Permission.TIME_TRACKING_READ,
        Permission.TIME_TRACKING_APPROVE,
        Permission.TIME_TRACKING_EXPORT,
        Permission.TIME_TRACKING_EMPLOYEE_FILTER_READ,
        Permission.FINANCIAL_READ,
        Permission.FINANCIAL_MANAGE_BUDGET,
        *(p for p in _EPIC_MANAGEMENT if p is not Permission.EPIC_VIEW_ALL),
        Permission.SPRINT_CREATE,
        Permission.SPRINT_VIEW,
        Permission.SPRINT_READ,
        Permission.SPRINT_EDIT,
        Permission.SPRINT_UPDATE,
        Permission.SPRINT_DELETE,
        Permission.SPRINT_MANAGE,
        Permission.SPRINT_EVENT_VIEW,
        Permission.SPRINT_START,
        Permission.SPRINT_COMPLETE,
        Permission.STORY_CREATE,
        Permission.STORY_READ,
        Permission.STORY_UPDATE,
        Permission.STORY_DELETE,
        *_PLANNING_TOOLS,
    ],
    ProjectRole.PROJECT_MEMBER: [
        *_PROJECT_READ_BASE,
        Permission.TASK_CREATE,
        Permission.TASK_UPDATE,
        Permission.TASK_CHANGE_STATUS,
        Permission.TASK_MANAGE_COMMENTS,
        Permission.TIME_TRACKING_CREATE,
        Permission.TIME_TRACKING_DELETE,
        Permission.STORY_CREATE,
        Permission.STORY_UPDATE,
    ],
    ProjectRole.PROJECT_VIEWER: list(_PROJECT_READ_BASE),
    ProjectRole.PROJECT_CLIENT: list(_PROJECT_READ_BASE),
    ProjectRole.PROJECT_QA_LEAD: [
        *_PROJECT_READ_BASE,
        Permission.TASK_CREATE,
        Permission.TASK_UPDATE,
        Permission.TASK_ASSIGN,
        Permission.TASK_CHANGE_STATUS,
        Permission.TASK_MANAGE_COMMENTS,
        Permission.TASK_MANAGE_ATTACHMENTS,
        *_TEST_MANAGEMENT_FULL,
    ],
    ProjectRole.PROJECT_TESTER: [
        *_PROJECT_READ_BASE,
        Permission.TASK_CREATE,
        Permission.TASK_UPDATE,
        Permission.TASK_MANAGE_COMMENTS,
        Permission.TASK_MANAGE_ATTACHMENTS,
        *_TEST_EXECUTION_ONLY,
    ],
}

# ---------------------------------------------------------------------------
# Scopes
# ---------------------------------------------------------------------------

GLOBAL_SCOPE_PERMISSIONS: frozenset[str] = frozenset(
    p.value
    for p in (
        Permission.USER_CREATE,
        Permission.USER_DELETE,
        Permission.USER_INVITE,
        Permission.USER_MANAGE_ROLES,
        Permission.ORGANIZATION_UPDATE,
        Permission.ORGANIZATION_DELETE,
        Permission.ORGANIZATION_MANAGE_SETTINGS,
        Permission.ORGANIZATION_MANAGE_BILLING,
        Permission.PROJECT_CREATE,
        Permission.PROJECT_VIEW_ALL,
        Permission.TASK_VIEW_ALL,
        Permission.TASK_EDIT_ALL,
        Permission.TASK_DELETE_ALL,
        Permission.EPIC_VIEW,
        Permission.EPIC_READ,
        Permission.STORY_VIEW_ALL,
        Permission.SPRINT_VIEW,
        Permission.SPRINT_READ,
        Permission.SPRINT_VIEW_ALL,
        Permission.EPIC_VIEW_ALL,
        Permission.SPRINT_EVENT_VIEW_ALL,
        Permission.TEAM_INVITE,
        Permission.TEAM_EDIT,
        Permission.TEAM_REMOVE,
        Permission.TEAM_DELETE,
        Permission.TIME_TRACKING_VIEW_ALL,
        Permission.TIME_TRACKING_VIEW_ASSIGNED,
        Permission.TIME_TRACKING_VIEW_ALL_TIMER,
        Permission.FINANCIAL_READ,
        Permission.BUDGET_HANDLING,
        Permission.REPORTING_VIEW,
        Permission.REPORTING_CREATE,
        Permission.REPORTING_EXPORT,
        Permission.REPORTING_SHARE,
        Permission.SETTINGS_MANAGE_EMAIL,
        Permission.SETTINGS_MANAGE_DATABASE,
        Permission.SETTINGS_MANAGE_SECURITY,
    )
)

OWN_SCOPE_PERMISSIONS: frozenset[str] = frozenset(
    p.value
    for p in (
        Permission.USER_READ,
        Permission.USER_UPDATE,
        Permission.TIME_TRACKING_CREATE,
        Permission.TIME_TRACKING_UPDATE,
        Permission.TIME_TRACKING_DELETE,
    )
)


def get_permission_scope(permission: Permission | str) -> PermissionScope:
    key = permission_key(permission)
    if key in GLOBAL_SCOPE_PERMISSIONS:
        return PermissionScope.GLOBAL
    if key in OWN_SCOPE_PERMISSIONS:
        return PermissionScope.OWN
    return PermissionScope.PROJECT


def get_role_permissions(role: Role | str) -> list[Permission]:
    """Base grants for an organization role; unknown roles grant nothing."""
    try:
        return ROLE_PERMISSIONS[Role(role)]
    except ValueError:
        return []


def get_project_role_permissions(role: ProjectRole | str) -> list[Permission]:
    """Grants for a project role; unknown roles grant nothing."""
    try:
        return PROJECT_ROLE_PERMISSIONS[ProjectRole(role)]
    except ValueError:
        return []


# Roles that see every project in their organization
ADMIN_TIER_ROLES: frozenset[str] = frozenset({Role.SUPER_ADMIN.value, Role.ADMIN.value})

# Read-only navigation set the client falls back to when the permission
# endpoint is unreachable.
DEFAULT_FALLBACK_PERMISSIONS: list[Permission] = [
    Permission.PROJECT_READ,
    Permission.TASK_READ,
    Permission.TEAM_READ,
    Permission.TIME_TRACKING_READ,
    Permission.FINANCIAL_READ,
    Permission.REPORTING_VIEW,
    Permission.SETTINGS_VIEW,
    Permission.EPIC_READ,
    Permission.SPRINT_READ,
    Permission.SPRINT_VIEW,
    Permission.STORY_READ,
    Permission.CALENDAR_READ,
    Permission.KANBAN_READ,
    Permission.BACKLOG_READ,
    Permission.TEST_SUITE_READ,
    Permission.TEST_CASE_READ,
    Permission.TEST_PLAN_READ,
    Permission.TEST_EXECUTION_READ,
    Permission.TEST_REPORT_VIEW,
]

# System role display names reserved against custom role naming
SYSTEM_ROLE_LABELS: dict[Role, str] = {
    Role.SUPER_ADMIN: "Super Administrator",
    Role.ADMIN: "Administrator",
    Role.HUMAN_RESOURCE: "Human Resource",
    Role.PROJECT_MANAGER: "Project Manager",
    Role.TEAM_MEMBER: "Team Member",
    Role.CLIENT: "Client",
    Role.VIEWER: "Viewer",
    Role.QA_ENGINEER: "QA Engineer",
    Role.TESTER: "Tester",
}
