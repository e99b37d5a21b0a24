from enum import Enum


class TaskStatus(str, Enum):
    PENDING = "Pending"
    IN_PROGRESS = "InProgress"
    COMPLETED = "Completed"

    def __str__(self):
        return self.value


class TaskPriority(str, Enum):
    LOW = "Low"
    MEDIUM = "Medium"
    HIGH = "High"

    def __str__(self):
        return self.value


class ChangeType(str, Enum):
    CREATE = "Create"
    UPDATE = "Update"
    COMMENT = "Comment"

    def __str__(self):
        return self.value


class HistoryField(str, Enum):
    TITLE = "Title"
    DESCRIPTION = "Description"
    DUE_DATE = "DueDate"
    STATUS = "Status"

    def __str__(self):
        return self.value


class UserRole(str, Enum):
    USER = "User"
    MANAGER = "Manager"

    def __str__(self):
        return self.value


class Collection(str, Enum):
    USERS = "users"
    PROJECTS = "projects"
    TASKS = "tasks"
    HISTORY = "history"

    def __str__(self):
        return self.value
