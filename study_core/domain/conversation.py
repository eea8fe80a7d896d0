from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Literal, Optional


# 会话日志中的角色；system 仅用于错误/诊断条目
MessageRole = Literal["user", "assistant", "system"]


@dataclass(frozen=True)
class Message:
    role: MessageRole
    content: str
    created_at: datetime


def create_message(role: MessageRole, content: str, created_at: Optional[datetime] = None) -> Message:
    """Build a Message stamped with the current UTC time unless one is given."""

    return Message(role=role, content=content, created_at=created_at or datetime.now(timezone.utc))
