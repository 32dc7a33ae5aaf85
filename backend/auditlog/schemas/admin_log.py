from typing import List, Optional

from pydantic import BaseModel


class AdminLogOut(BaseModel):
    id: int
    timestamp: str
    admin_username: str
    action: str
    entity_type: str
    entity_id: int
    details: Optional[str] = None
    ip_address: Optional[str] = None


class AdminLogPageOut(BaseModel):
    content: List[AdminLogOut]
    total_elements: int
    total_pages: int
    page: int
    size: int


class AdminLogStatsOut(BaseModel):
    total_count: int
    count_since_last_24h: int
    distinct_actor_count: int
    distinct_actors: List[str]
