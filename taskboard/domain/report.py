from dataclasses import dataclass
from datetime import datetime


@dataclass(frozen=True)
class PerformanceReport:
    generated_at: datetime
    total_tasks_completed: int
    distinct_users_who_completed_tasks: int
    average_tasks_completed_per_user: float

    def as_dict(self) -> dict:
        return {
            "generatedAt": self.generated_at,
            "totalTasksCompleted": self.total_tasks_completed,
            "distinctUsersWhoCompletedTasks": self.distinct_users_who_completed_tasks,
            "averageTasksCompletedPerUser": self.average_tasks_completed_per_user,
        }
