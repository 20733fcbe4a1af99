"""Client-side permission cache.

Mirrors the server's resolved permission snapshot so UI gating can answer
permission checks synchronously. This is a rendering aid only: checks fail
open while the snapshot is loading, so anything that matters must still be
enforced by ``PermissionService`` on the server.

State machine::

    UNINITIALIZED -> LOADING -> LOADED
                             -> ERROR   (fallback read-only snapshot)
"""

from __future__ import annotations

import enum
import json
import logging
import time
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass
from typing import Any

import httpx
from pydantic import ValidationError

from planboard.client.storage import MemorySessionStorage, SessionStorage
from planboard.config import settings
from planboard.core.metrics import permission_snapshot_loads_total
from planboard.core.permissions import (
    DEFAULT_FALLBACK_PERMISSIONS,
    Permission,
    Role,
    permission_key,
)
from planboard.schemas.permissions import PermissionSnapshot

logger = logging.getLogger(__name__)

STORAGE_KEY = "planboard_permissions"
STORAGE_TIMESTAMP_KEY = "planboard_permissions_timestamp"
DEFAULT_ENDPOINT = "/api/v1/auth/permissions"


class LoadState(str, enum.Enum):
    UNINITIALIZED = "uninitialized"
    LOADING = "loading"
    LOADED = "loaded"
    ERROR = "error"


def fallback_snapshot() -> PermissionSnapshot:
    """Read-only navigation set used when the permission endpoint fails."""
    return PermissionSnapshot(
        user_id=None,
        global_permissions=[p.value for p in DEFAULT_FALLBACK_PERMISSIONS],
        user_role=Role.TEAM_MEMBER.value,
    )


class PermissionStore:
    """One instance per user session. Inject it wherever gating is needed."""

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        storage: SessionStorage | None = None,
        ttl_seconds: float | None = None,
        clock: Callable[[], float] = time.time,
        endpoint: str = DEFAULT_ENDPOINT,
    ) -> None:
        self.http_client = http_client
        self.storage: SessionStorage = storage if storage is not None else MemorySessionStorage()
        self.ttl_seconds = (
            ttl_seconds if ttl_seconds is not None else settings.PERMISSION_CACHE_TTL_SECONDS
        )
        self.clock = clock
        self.endpoint = endpoint

        self.state = LoadState.UNINITIALIZED
        self.error: str | None = None
        self._snapshot: PermissionSnapshot | None = None
        self._cached_at: float | None = None
        self._cached_is_fallback = False

    # ------------------------------------------------------------------
    # Cache bookkeeping
    # ------------------------------------------------------------------

    @property
    def snapshot(self) -> PermissionSnapshot | None:
        return self._snapshot

    @property
    def loading(self) -> bool:
        return self.state in (LoadState.UNINITIALIZED, LoadState.LOADING)

    def _is_fresh(self, cached_at: float | None) -> bool:
        if cached_at is None:
            return False
        # Timestamps from the future are treated as expired
        return 0 <= self.clock() - cached_at < self.ttl_seconds

    def _set_cache(self, snapshot: PermissionSnapshot, *, fallback: bool = False) -> None:
        self._snapshot = snapshot
        self._cached_at = self.clock()
        self._cached_is_fallback = fallback
        self.state = LoadState.ERROR if fallback else LoadState.LOADED

    def _clear_memory(self) -> None:
        self._snapshot = None
        self._cached_at = None
        self._cached_is_fallback = False

    def _persist(self, snapshot: PermissionSnapshot) -> None:
        try:
            self.storage.set_item(STORAGE_KEY, json.dumps(snapshot.to_wire()))
            self.storage.set_item(STORAGE_TIMESTAMP_KEY, str(int(self.clock() * 1000)))
        except (OSError, ValueError) as exc:
            logger.warning("Could not persist permission snapshot: %s", exc)

    def _clear_storage(self) -> None:
        try:
            self.storage.remove_item(STORAGE_KEY)
            self.storage.remove_item(STORAGE_TIMESTAMP_KEY)
        except (OSError, ValueError) as exc:
            logger.warning("Could not clear stored permission snapshot: %s", exc)

    def _load_from_storage(self) -> bool:
        """Hydrate from session storage if an unexpired entry exists. Expired entries are removed."""
        try:
            raw = self.storage.get_item(STORAGE_KEY)
            raw_ts = self.storage.get_item(STORAGE_TIMESTAMP_KEY)
        except (OSError, ValueError) as exc:
            logger.warning("Could not read stored permission snapshot: %s", exc)
            return False
        if not raw or not raw_ts:
            return False

        try:
            stored_at = int(raw_ts) / 1000
        except ValueError:
            self._clear_storage()
            return False
        if not self._is_fresh(stored_at):
            self._clear_storage()
            return False

        try:
            snapshot = PermissionSnapshot.model_validate_json(raw)
        except ValidationError as exc:
            logger.warning("Discarding unreadable stored permission snapshot: %s", exc)
            self._clear_storage()
            return False

        self._snapshot = snapshot
        self._cached_at = stored_at
        self._cached_is_fallback = False
        self.state = LoadState.LOADED
        return True

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def init(
        self, initial: PermissionSnapshot | Mapping[str, Any] | None = None
    ) -> PermissionSnapshot:
        """Bring the store to a settled state.

        Sources in order: a server-hydrated ``initial`` snapshot, the unexpired
        in-memory cache, an unexpired session-storage entry, a fresh fetch.
        """
        if initial is not None:
            snapshot = (
                initial
                if isinstance(initial, PermissionSnapshot)
                else PermissionSnapshot.model_validate(initial)
            )
            self.error = None
            self._set_cache(snapshot)
            self._persist(snapshot)
            permission_snapshot_loads_total.labels(source="initial").inc()
            return snapshot

        if self._snapshot is not None and self._is_fresh(self._cached_at):
            self.state = LoadState.ERROR if self._cached_is_fallback else LoadState.LOADED
            permission_snapshot_loads_total.labels(source="memory").inc()
            return self._snapshot

        if self._load_from_storage():
            permission_snapshot_loads_total.labels(source="storage").inc()
            return self._snapshot

        return await self.fetch()

    async def fetch(self) -> PermissionSnapshot:
        """Fetch the snapshot from the server. Never raises; failures yield the fallback."""
        self.state = LoadState.LOADING
        self.error = None
        try:
            resp = await self.http_client.get(self.endpoint)
            if resp.status_code == 401:
                return self._fall_back("not authenticated (401)")
            resp.raise_for_status()
            snapshot = PermissionSnapshot.model_validate(resp.json())
        except (httpx.HTTPError, ValueError) as exc:
            # ValidationError and JSON decode errors are ValueErrors
            return self._fall_back(str(exc) or type(exc).__name__)

        self._set_cache(snapshot)
        self._persist(snapshot)
        permission_snapshot_loads_total.labels(source="server").inc()
        return snapshot

    def _fall_back(self, reason: str) -> PermissionSnapshot:
        logger.warning("Permission fetch failed, using read-only defaults: %s", reason)
        self.error = reason
        snapshot = fallback_snapshot()
        self._set_cache(snapshot, fallback=True)
        permission_snapshot_loads_total.labels(source="fallback").inc()
        return snapshot

    async def refresh_permissions(self) -> PermissionSnapshot:
        """Drop every cached copy and re-fetch, e.g. after a role change."""
        self.invalidate()
        return await self.fetch()

    def invalidate(self) -> None:
        """Drop every cached copy without fetching."""
        self._clear_memory()
        self._clear_storage()
        self.state = LoadState.UNINITIALIZED
        self.error = None

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def has_permission(self, permission: Permission | str, project_id: str | None = None) -> bool:
        # Fail open until a snapshot has settled
        if self.loading or self._snapshot is None:
            return True
        snapshot = self._snapshot
        if snapshot.is_empty():
            return False

        key = permission_key(permission)
        if key in snapshot.global_permissions:
            return True
        if project_id is not None:
            return key in snapshot.project_permissions.get(str(project_id), [])
        return False

    def has_any_permission(
        self, permissions: Iterable[Permission | str], project_id: str | None = None
    ) -> bool:
        return any(self.has_permission(p, project_id) for p in permissions)

    def has_all_permissions(
        self, permissions: Iterable[Permission | str], project_id: str | None = None
    ) -> bool:
        return all(self.has_permission(p, project_id) for p in permissions)

    def can_access_project(self, project_id: str) -> bool:
        # No optimistic answer here: an unknown project list grants nothing
        if self._snapshot is None:
            return False
        return str(project_id) in self._snapshot.accessible_projects

    def can_manage_project(self, project_id: str) -> bool:
        return self.has_permission(Permission.PROJECT_UPDATE, project_id)

    @property
    def accessible_projects(self) -> list[str]:
        if self._snapshot is None:
            return []
        return list(self._snapshot.accessible_projects)

    def for_project(self, project_id: str) -> ProjectPermissionView:
        return ProjectPermissionView(self, str(project_id))

    def feature_permissions(self) -> FeaturePermissions:
        return FeaturePermissions.from_store(self)

    def user_management_permissions(self) -> UserManagementPermissions:
        return UserManagementPermissions.from_store(self)


class ProjectPermissionView:
    """Store queries bound to one project."""

    def __init__(self, store: PermissionStore, project_id: str) -> None:
        self.store = store
        self.project_id = project_id

    def has_permission(self, permission: Permission | str) -> bool:
        return self.store.has_permission(permission, self.project_id)

    def has_any_permission(self, permissions: Iterable[Permission | str]) -> bool:
        return self.store.has_any_permission(permissions, self.project_id)

    def has_all_permissions(self, permissions: Iterable[Permission | str]) -> bool:
        return self.store.has_all_permissions(permissions, self.project_id)

    @property
    def can_access(self) -> bool:
        return self.store.can_access_project(self.project_id)

    @property
    def can_manage(self) -> bool:
        return self.store.can_manage_project(self.project_id)

    @property
    def loading(self) -> bool:
        return self.store.loading


# ---------------------------------------------------------------------------
# Feature bundles: pure combinators over the cached snapshot
# ---------------------------------------------------------------------------

P = Permission

_FEATURE_BUNDLES: dict[str, tuple[Permission, ...]] = {
    "can_create_project": (P.PROJECT_CREATE,),
    "can_view_all_projects": (P.PROJECT_VIEW_ALL,),
    "can_create_task": (P.TASK_CREATE,),
    "can_manage_tasks": (P.TASK_UPDATE, P.TASK_DELETE, P.TASK_ASSIGN),
    "can_manage_team": (
        P.TEAM_EDIT,
        P.TEAM_DELETE,
        P.TEAM_INVITE,
        P.TEAM_REMOVE,
        P.TEAM_MANAGE_PERMISSIONS,
    ),
    "can_track_time": (P.TIME_TRACKING_CREATE,),
    "can_approve_time": (P.TIME_TRACKING_APPROVE,),
    "can_view_all_time": (P.TIME_TRACKING_VIEW_ALL,),
    "can_manage_budget": (P.FINANCIAL_MANAGE_BUDGET,),
    "can_create_expense": (P.FINANCIAL_CREATE_EXPENSE,),
    "can_approve_expense": (P.FINANCIAL_APPROVE_EXPENSE,),
    "can_manage_settings": (
        P.SETTINGS_UPDATE,
        P.SETTINGS_MANAGE_EMAIL,
        P.SETTINGS_MANAGE_DATABASE,
        P.SETTINGS_MANAGE_SECURITY,
    ),
    "can_view_reports": (P.REPORTING_VIEW,),
    "can_create_reports": (P.REPORTING_CREATE,),
    "can_export_reports": (P.REPORTING_EXPORT,),
    "can_manage_epics": (P.EPIC_CREATE, P.EPIC_UPDATE, P.EPIC_DELETE),
    "can_view_sprints": (P.SPRINT_VIEW, P.SPRINT_READ),
    "can_manage_sprints": (
        P.SPRINT_CREATE,
        P.SPRINT_UPDATE,
        P.SPRINT_DELETE,
        P.SPRINT_MANAGE,
        P.SPRINT_EDIT,
    ),
    "can_start_sprints": (P.SPRINT_START,),
    "can_complete_sprints": (P.SPRINT_COMPLETE,),
    "can_manage_stories": (P.STORY_CREATE, P.STORY_UPDATE, P.STORY_DELETE),
    "can_manage_calendar": (P.CALENDAR_CREATE, P.CALENDAR_UPDATE, P.CALENDAR_DELETE),
    "can_manage_kanban": (P.KANBAN_MANAGE,),
    "can_manage_backlog": (P.BACKLOG_MANAGE,),
    "can_manage_test_suites": (P.TEST_SUITE_CREATE, P.TEST_SUITE_UPDATE, P.TEST_SUITE_DELETE),
    "can_manage_test_cases": (P.TEST_CASE_CREATE, P.TEST_CASE_UPDATE, P.TEST_CASE_DELETE),
    "can_manage_test_plans": (
        P.TEST_PLAN_CREATE,
        P.TEST_PLAN_UPDATE,
        P.TEST_PLAN_DELETE,
        P.TEST_PLAN_MANAGE,
    ),
    "can_execute_tests": (P.TEST_EXECUTION_CREATE, P.TEST_EXECUTION_UPDATE),
    "can_view_test_reports": (P.TEST_REPORT_VIEW,),
    "can_export_test_reports": (P.TEST_REPORT_EXPORT,),
}

_USER_MANAGEMENT_BUNDLES: dict[str, tuple[Permission, ...]] = {
    "can_create_user": (P.USER_CREATE,),
    "can_invite_user": (P.USER_INVITE,),
    "can_manage_roles": (P.USER_MANAGE_ROLES,),
    "can_activate_user": (P.USER_ACTIVATE,),
    "can_deactivate_user": (P.USER_DEACTIVATE,),
    "can_delete_user": (P.USER_DELETE,),
    "can_manage_users": (P.USER_CREATE, P.USER_UPDATE, P.USER_DELETE, P.USER_INVITE),
}


@dataclass(frozen=True)
class FeaturePermissions:
    can_create_project: bool
    can_view_all_projects: bool
    can_create_task: bool
    can_manage_tasks: bool
    can_manage_team: bool
    can_track_time: bool
    can_approve_time: bool
    can_view_all_time: bool
    can_manage_budget: bool
    can_create_expense: bool
    can_approve_expense: bool
    can_manage_settings: bool
    can_view_reports: bool
    can_create_reports: bool
    can_export_reports: bool
    can_manage_epics: bool
    can_view_sprints: bool
    can_manage_sprints: bool
    can_start_sprints: bool
    can_complete_sprints: bool
    can_manage_stories: bool
    can_manage_calendar: bool
    can_manage_kanban: bool
    can_manage_backlog: bool
    can_manage_test_suites: bool
    can_manage_test_cases: bool
    can_manage_test_plans: bool
    can_execute_tests: bool
    can_view_test_reports: bool
    can_export_test_reports: bool
    loading: bool = False
    error: str | None = None

    @classmethod
    def from_store(cls, store: PermissionStore) -> FeaturePermissions:
        flags = {name: store.has_any_permission(perms) for name, perms in _FEATURE_BUNDLES.items()}
        return cls(**flags, loading=store.loading, error=store.error)


@dataclass(frozen=True)
class UserManagementPermissions:
    can_create_user: bool
    can_invite_user: bool
    can_manage_roles: bool
    can_activate_user: bool
    can_deactivate_user: bool
    can_delete_user: bool
    can_manage_users: bool
    loading: bool = False
    error: str | None = None

    @classmethod
    def from_store(cls, store: PermissionStore) -> UserManagementPermissions:
        flags = {
            name: store.has_any_permission(perms)
            for name, perms in _USER_MANAGEMENT_BUNDLES.items()
        }
        return cls(**flags, loading=store.loading, error=store.error)


FEATURE_NAMES: frozenset[str] = frozenset(_FEATURE_BUNDLES)
