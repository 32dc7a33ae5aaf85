from typing import Iterable, Optional

from auditlog.core.config import settings
from auditlog.core.request_context import RequestContext
from auditlog.models.admin_log import ANONYMOUS_ACTOR


def _normalize_role(role: str) -> str:
    name = role.strip().upper()
    if name.startswith("ROLE_"):
        name = name[len("ROLE_"):]
    return name


class AuthorizationResolver:
    """Best-effort answer to "is the current caller an admin?".

    This only decides whether an action gets written to the admin log. Access
    control for the operation itself is enforced by ``require_roles``.
    """

    def __init__(self, privileged_roles: Iterable[str]):
        self.privileged_roles = frozenset(
            _normalize_role(role) for role in privileged_roles if role and role.strip()
        )

    def is_privileged_actor(self, context: Optional[RequestContext]) -> bool:
        if context is None or not context.principal:
            return False
        return any(_normalize_role(role) in self.privileged_roles for role in context.roles)

    def current_actor_identity(self, context: Optional[RequestContext]) -> str:
        if context is None or not context.principal:
            return ANONYMOUS_ACTOR
        return context.principal


def default_resolver() -> AuthorizationResolver:
    return AuthorizationResolver(settings.PRIVILEGED_ROLES.split(","))
