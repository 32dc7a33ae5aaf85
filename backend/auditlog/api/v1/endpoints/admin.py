from fastapi import APIRouter, Depends

from auditlog.core.security import require_roles
from auditlog.models.role import ROLE_ADMIN, ROLE_SUPER_ADMIN
from auditlog.models.user import User

router = APIRouter()


@router.get("/ping")
def admin_ping(user: User = Depends(require_roles(ROLE_ADMIN, ROLE_SUPER_ADMIN))) -> dict:
    return {"status": "ok", "user_id": user.id}
