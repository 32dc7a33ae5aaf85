from auditlog.db.base import Base
from auditlog.models.admin_log import AdminAction, AdminEntityType, AdminLog
from auditlog.models.role import Role
from auditlog.models.user import User, user_roles

__all__ = [
    "Base",
    "AdminAction",
    "AdminEntityType",
    "AdminLog",
    "Role",
    "User",
    "user_roles",
]
