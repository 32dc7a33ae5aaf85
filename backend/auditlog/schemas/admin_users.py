from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, Field


class AdminUserOut(BaseModel):
    id: int
    username: str
    display_name: Optional[str] = None
    roles: List[str]


class AdminUserDisplayNameUpdate(BaseModel):
    display_name: str = Field(min_length=1, max_length=100)


class RoleChangeOut(BaseModel):
    id: int
    granted: Optional[bool] = None
    revoked: Optional[bool] = None
