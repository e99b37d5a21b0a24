from typing import NewType
from dataclasses import dataclass
from datetime import datetime

from taskboard.domain.enums import UserRole

UserId = NewType("UserId", str)


@dataclass(frozen=True)
class User:
    """Registered user; referenced by id from projects, tasks and history, never embedded."""
    user_id: UserId
    name: str
    email: str
    created_at: datetime
    role: UserRole = UserRole.USER

    @property
    def is_manager(self) -> bool:
        return self.role == UserRole.MANAGER
