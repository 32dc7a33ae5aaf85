from __future__ import annotations

import logging
from typing import Optional

from sqlalchemy.orm import Session

from auditlog.core.audit import AdminLogRecorder
from auditlog.core.config import settings
from auditlog.core.security import hash_password, verify_password
from auditlog.models.admin_log import AdminAction, AdminEntityType
from auditlog.models.role import ALL_ROLES, Role
from auditlog.models.user import User

logger = logging.getLogger(__name__)


def _ensure_roles(db: Session) -> dict[str, Role]:
    roles: dict[str, Role] = {}
    for name in ALL_ROLES:
        role = db.query(Role).filter(Role.name == name).first()
        if not role:
            role = Role(name=name)
            db.add(role)
            db.flush()
        roles[name] = role
    return roles


def ensure_admin_account(db: Session, recorder: Optional[AdminLogRecorder] = None) -> User:
    """
    Idempotent bootstrap of the default admin account.

    A freshly created account is written to the admin log as a system event.
    """
    roles = _ensure_roles(db)
    display_name = settings.ADMIN_DISPLAY_NAME.strip() or settings.ADMIN_USERNAME

    user = db.query(User).filter(User.username == settings.ADMIN_USERNAME).first()
    created = user is None
    if created:
        user = User(
            username=settings.ADMIN_USERNAME,
            email=settings.ADMIN_EMAIL,
            display_name=display_name,
            hashed_password=hash_password(settings.ADMIN_PASSWORD),
            is_active=True,
        )
        user.roles = list(roles.values())
        db.add(user)
        logger.info("default admin created: %s", settings.ADMIN_USERNAME)
    else:
        existing = {role.name for role in user.roles}
        for name in ALL_ROLES:
            if name not in existing:
                user.roles.append(roles[name])
                logger.info("added %s role to existing user: %s", name, user.username)
        if settings.ADMIN_RESET_PASSWORD_ON_START and not verify_password(
            settings.ADMIN_PASSWORD, user.hashed_password
        ):
            user.hashed_password = hash_password(settings.ADMIN_PASSWORD)
            logger.info("reset admin password on start for user: %s", user.username)
        if not user.email:
            user.email = settings.ADMIN_EMAIL
        if not user.display_name:
            user.display_name = display_name

    db.commit()
    db.refresh(user)

    if created and recorder is not None:
        recorder.record_unconditional(
            settings.ADMIN_LOG_SYSTEM_ACTOR,
            AdminAction.CREATE,
            AdminEntityType.USER,
            user.id,
            f"Default admin account created: {user.username}",
        )
    return user
