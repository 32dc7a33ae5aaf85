from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from auditlog.core.audit import admin_loggable
from auditlog.core.security import require_roles
from auditlog.db.session import get_db
from auditlog.models.admin_log import AdminAction, AdminEntityType
from auditlog.models.role import ROLE_ADMIN, ROLE_SUPER_ADMIN, Role
from auditlog.models.user import User
from auditlog.schemas.admin_users import AdminUserDisplayNameUpdate, AdminUserOut, RoleChangeOut

router = APIRouter()

require_admin = require_roles(ROLE_ADMIN, ROLE_SUPER_ADMIN)


def _user_to_out(user: User) -> AdminUserOut:
    return AdminUserOut(
        id=user.id,
        username=user.username,
        display_name=user.display_name,
        roles=user.role_names,
    )


def _get_user(db: Session, user_id: int) -> User:
    user = db.query(User).filter(User.id == user_id).first()
    if not user:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    return user


def _get_role(db: Session, name: str) -> Role:
    role = db.query(Role).filter(Role.name == name).first()
    if not role:
        role = Role(name=name)
        db.add(role)
        db.flush()
    return role


@router.get("", response_model=List[AdminUserOut])
@admin_loggable(AdminAction.READ, AdminEntityType.USER, details="List users")
def list_users(
    db: Session = Depends(get_db),
    q: Optional[str] = Query(default=None, description="Username or display name (contains)"),
    _user: User = Depends(require_admin),
):
    query = db.query(User)
    if q and q.strip():
        pattern = f"%{q.strip()}%"
        query = query.filter(User.username.ilike(pattern) | User.display_name.ilike(pattern))
    users = query.order_by(User.id.desc()).all()
    return [_user_to_out(u) for u in users]


@router.post("/{id}/grant-admin", response_model=RoleChangeOut)
@admin_loggable(AdminAction.UPDATE, AdminEntityType.USER, details="Grant admin role")
def grant_admin(
    id: int,
    db: Session = Depends(get_db),
    _user: User = Depends(require_admin),
):
    user = _get_user(db, id)
    if ROLE_ADMIN not in user.role_names:
        user.roles.append(_get_role(db, ROLE_ADMIN))
        db.commit()
    return RoleChangeOut(id=user.id, granted=True)


@router.post("/{id}/revoke-admin", response_model=RoleChangeOut)
@admin_loggable(AdminAction.UPDATE, AdminEntityType.USER, details="Revoke admin role")
def revoke_admin(
    id: int,
    db: Session = Depends(get_db),
    _user: User = Depends(require_admin),
):
    user = _get_user(db, id)
    if ROLE_SUPER_ADMIN in user.role_names:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Cannot revoke SUPER_ADMIN",
        )
    user.roles = [role for role in user.roles if role.name != ROLE_ADMIN]
    db.commit()
    return RoleChangeOut(id=user.id, revoked=True)


@router.put("/{id}/display-name", response_model=AdminUserOut)
@admin_loggable(AdminAction.UPDATE, AdminEntityType.USER, details="Update display name")
def update_display_name(
    id: int,
    payload: AdminUserDisplayNameUpdate,
    db: Session = Depends(get_db),
    _user: User = Depends(require_admin),
):
    display_name = payload.display_name.strip()
    if not display_name:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="display_name is required",
        )
    user = _get_user(db, id)
    user.display_name = display_name
    db.commit()
    db.refresh(user)
    return _user_to_out(user)
