"""Conditional-render gates over a ``PermissionStore``.

Gates show content while the store is still loading and hide it once the
store has settled without the required permission. They can be used three
ways::

    gate = PermissionGate(store, Permission.TASK_CREATE, project_id=pid)
    gate.allows()                                   # plain check
    gate.render(lambda: new_task_button(), fallback="")   # pick content
    @with_permission(store, Permission.TASK_CREATE)       # wrap a renderer
    def new_task_button(): ...
"""

from __future__ import annotations

import functools
from collections.abc import Callable, Iterable
from typing import Any

from planboard.client.store import FEATURE_NAMES, PermissionStore
from planboard.core.permissions import Permission

_UNSET: Any = object()


def _materialize(content: Any) -> Any:
    return content() if callable(content) else content


class _Gate:
    def __init__(self, store: PermissionStore, fallback: Any = None) -> None:
        self.store = store
        self.fallback = fallback

    def allows(self) -> bool:
        raise NotImplementedError

    def render(self, children: Any, fallback: Any = _UNSET) -> Any:
        """Return ``children`` when allowed, else the fallback. Callables are invoked lazily."""
        if self.allows():
            return _materialize(children)
        return _materialize(self.fallback if fallback is _UNSET else fallback)

    def __call__(self, render_fn: Callable[..., Any]) -> Callable[..., Any]:
        @functools.wraps(render_fn)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            if self.allows():
                return render_fn(*args, **kwargs)
            return _materialize(self.fallback)

        return wrapper


class PermissionGate(_Gate):
    def __init__(
        self,
        store: PermissionStore,
        permission: Permission | str,
        project_id: str | None = None,
        fallback: Any = None,
    ) -> None:
        super().__init__(store, fallback)
        self.permission = permission
        self.project_id = project_id

    def allows(self) -> bool:
        if self.store.loading or self.store.snapshot is None:
            return True
        return self.store.has_permission(self.permission, self.project_id)


class PermissionsGate(_Gate):
    def __init__(
        self,
        store: PermissionStore,
        permissions: Iterable[Permission | str],
        project_id: str | None = None,
        require_all: bool = False,
        fallback: Any = None,
    ) -> None:
        super().__init__(store, fallback)
        self.permissions = list(permissions)
        self.project_id = project_id
        self.require_all = require_all

    def allows(self) -> bool:
        if self.store.loading:
            return True
        if self.require_all:
            return self.store.has_all_permissions(self.permissions, self.project_id)
        return self.store.has_any_permission(self.permissions, self.project_id)


class ProjectAccessGate(_Gate):
    def __init__(
        self,
        store: PermissionStore,
        project_id: str,
        require_management: bool = False,
        fallback: Any = None,
    ) -> None:
        super().__init__(store, fallback)
        self.project_id = project_id
        self.require_management = require_management

    def allows(self) -> bool:
        view = self.store.for_project(self.project_id)
        return view.can_manage if self.require_management else view.can_access


class FeatureGate(_Gate):
    def __init__(self, store: PermissionStore, feature: str, fallback: Any = None) -> None:
        if feature not in FEATURE_NAMES:
            raise ValueError(f"Unknown feature: {feature}")
        super().__init__(store, fallback)
        self.feature = feature

    def allows(self) -> bool:
        return bool(getattr(self.store.feature_permissions(), self.feature))


# ---------------------------------------------------------------------------
# Decorator factories
# ---------------------------------------------------------------------------


def with_permission(
    store: PermissionStore,
    permission: Permission | str,
    project_id: str | None = None,
    fallback: Any = None,
) -> PermissionGate:
    return PermissionGate(store, permission, project_id=project_id, fallback=fallback)


def with_permissions(
    store: PermissionStore,
    permissions: Iterable[Permission | str],
    project_id: str | None = None,
    require_all: bool = False,
    fallback: Any = None,
) -> PermissionsGate:
    return PermissionsGate(
        store, permissions, project_id=project_id, require_all=require_all, fallback=fallback
    )


def with_project_access(
    store: PermissionStore,
    project_id: str,
    require_management: bool = False,
    fallback: Any = None,
) -> ProjectAccessGate:
    return ProjectAccessGate(
        store, project_id, require_management=require_management, fallback=fallback
    )
