from dataclasses import dataclass, field
from typing import FrozenSet, Optional

from fastapi import Depends, Request

from auditlog.core.security import get_optional_user
from auditlog.models.user import User

# Checked in order; the socket peer address is the last resort.
CLIENT_ADDRESS_HEADERS = (
    "X-Forwarded-For",
    "Proxy-Client-IP",
    "WL-Proxy-Client-IP",
    "HTTP_CLIENT_IP",
    "HTTP_X_FORWARDED_FOR",
)


@dataclass(frozen=True)
class RequestContext:
    """Ambient facts about the request an operation runs in."""

    principal: Optional[str] = None
    roles: FrozenSet[str] = field(default_factory=frozenset)
    method: Optional[str] = None
    path: Optional[str] = None
    client_address: Optional[str] = None


def _usable(value: Optional[str]) -> bool:
    return bool(value) and value.strip().lower() != "unknown"


def client_address(request: Request) -> Optional[str]:
    for header in CLIENT_ADDRESS_HEADERS:
        value = request.headers.get(header)
        if _usable(value):
            # X-Forwarded-For may be a proxy chain; the first hop is the client
            return value.split(",")[0].strip()
    if request.client is not None:
        return request.client.host
    return None


def build_request_context(request: Request, user: Optional[User]) -> RequestContext:
    return RequestContext(
        principal=user.username if user is not None else None,
        roles=frozenset(role.name for role in user.roles) if user is not None else frozenset(),
        method=request.method,
        path=request.url.path,
        client_address=client_address(request),
    )


def get_request_context(
    request: Request,
    user: Optional[User] = Depends(get_optional_user),
) -> RequestContext:
    return build_request_context(request, user)
