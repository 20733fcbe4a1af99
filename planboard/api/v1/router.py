from fastapi import APIRouter

from planboard.api.v1 import auth, projects, roles, users

api_router = APIRouter()

api_router.include_router(auth.router)
api_router.include_router(roles.router)
api_router.include_router(users.router)
api_router.include_router(projects.router)
