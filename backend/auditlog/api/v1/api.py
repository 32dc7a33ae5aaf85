from fastapi import APIRouter

from auditlog.api.v1.endpoints import admin, admin_logs, admin_users, auth

api_router = APIRouter()

api_router.include_router(auth.router, prefix="/auth", tags=["auth"])
api_router.include_router(admin.router, prefix="/admin", tags=["admin"])
api_router.include_router(admin_users.router, prefix="/admin/users", tags=["admin"])
api_router.include_router(admin_logs.router, prefix="/admin/logs", tags=["admin"])
