import enum
from datetime import datetime
from typing import Optional

from sqlalchemy import BigInteger, DateTime, Enum, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from auditlog.db.base import Base

ANONYMOUS_ACTOR = "anonymous"
IP_ADDRESS_MAX_LENGTH = 64


class AdminAction(str, enum.Enum):
    CREATE = "CREATE"
    READ = "READ"
    UPDATE = "UPDATE"
    DELETE = "DELETE"


class AdminEntityType(str, enum.Enum):
    TODO = "TODO"
    CALENDAR_EVENT = "CALENDAR_EVENT"
    NOTICE = "NOTICE"
    NOTICE_COMMENT = "NOTICE_COMMENT"
    SCENARIO = "SCENARIO"
    USER = "USER"


class AdminLog(Base):
    """One append-only admin activity record.

    Rows are inserted through ``AdminLogStore.append`` only; nothing in the
    application updates or deletes them.
    """

    __tablename__ = "admin_logs"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    timestamp: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, index=True
    )
    admin_username: Mapped[str] = mapped_column(String(100), nullable=False, index=True)
    action: Mapped[AdminAction] = mapped_column(
        Enum(AdminAction, native_enum=False, length=16), nullable=False
    )
    entity_type: Mapped[AdminEntityType] = mapped_column(
        Enum(AdminEntityType, native_enum=False, length=32), nullable=False
    )
    # 0 when the action is not tied to one resource (e.g. list operations)
    entity_id: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    details: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    ip_address: Mapped[Optional[str]] = mapped_column(String(IP_ADDRESS_MAX_LENGTH), nullable=True)

    def __repr__(self) -> str:
        return (
            f"AdminLog(id={self.id!r}, admin_username={self.admin_username!r}, "
            f"action={self.action!r}, entity_type={self.entity_type!r}, "
            f"entity_id={self.entity_id!r})"
        )
