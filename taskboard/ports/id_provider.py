from typing import Protocol


class IdProvider(Protocol):
    """Generates unique identifiers for users, projects, tasks and history entries."""
    def new_id(self) -> str:
        pass
