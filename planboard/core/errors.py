"""Domain errors raised by the authorization core."""

from __future__ import annotations

from collections.abc import Iterable

from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse


class NotFoundError(LookupError):
    """A referenced record (user, project, custom role) does not exist."""

    def __init__(self, entity: str, identifier: object) -> None:
        super().__init__(f"{entity} not found: {identifier}")
        self.entity = entity
        self.identifier = identifier


class PermissionDenied(HTTPException):
    """Raised by the ``require_*`` guards.

    The response body stays generic; the failed permission names are kept on
    ``permissions`` for server-side logging only.
    """

    def __init__(self, permissions: Iterable[str] = (), reason: str | None = None) -> None:
        super().__init__(status_code=403, detail="Insufficient permissions")
        self.permissions = tuple(permissions)
        self.reason = reason


async def _not_found_handler(request: Request, exc: NotFoundError) -> JSONResponse:
    return JSONResponse(status_code=404, content={"detail": "Not found"})


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(NotFoundError, _not_found_handler)
