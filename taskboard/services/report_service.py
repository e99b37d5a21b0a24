import logging
from datetime import timedelta

from taskboard.config import DEFAULT_REPORT_WINDOW_DAYS
from taskboard.domain.enums import ChangeType, Collection, HistoryField, TaskStatus
from taskboard.domain.errors import PermissionDeniedError, UserNotFoundError
from taskboard.domain.report import PerformanceReport
from taskboard.domain.user import UserId
from taskboard.ports.cache import PERFORMANCE_REPORT_KEY, Cache
from taskboard.ports.clock import Clock
from taskboard.ports.entity_store import EntityStore

logger = logging.getLogger(__name__)


class ReportService:
    """
    Statistics derived from the task history. Reads only; never mutates.

    :param window_days: How far back completions are counted.
    """
    def __init__(
        self,
        store: EntityStore,
        clock: Clock,
        *,
        cache: Cache | None = None,
        window_days: int = DEFAULT_REPORT_WINDOW_DAYS,
    ) -> None:
        self.store = store
        self.clock = clock
        self.cache = cache
        self.window_days = window_days

    def get_performance_report(self, actor_id: UserId) -> PerformanceReport:
        """
        Completions within the window: Update entries on Status with new value Completed.

        - Only Managers may read it; the role check runs before history is queried.
        - Average per distinct user is rounded to 2 decimals; everything is 0 when
          nothing was completed.

        :raises UserNotFoundError: When the actor does not exist.
        :raises PermissionDeniedError: When the actor is not a Manager.
        """
        actor = self.store.find_by_id(Collection.USERS, actor_id)
        if actor is None:
            raise UserNotFoundError(actor_id)
        if not actor.is_manager:
            logger.warning("User %s denied access to the performance report", actor_id)
            raise PermissionDeniedError(actor_id, "access the performance report")

        if self.cache is not None:
            cached = self.cache.get(PERFORMANCE_REPORT_KEY)
            if cached is not None:
                return cached

        now = self.clock.now()
        since = now - timedelta(days=self.window_days)
        completed = [
            h
            for h in self.store.find_where(
                Collection.HISTORY,
                {
                    "change_type": ChangeType.UPDATE,
                    "field_name": HistoryField.STATUS,
                    "new_value": TaskStatus.COMPLETED.value,
                },
            )
            if h.change_date >= since
        ]

        total = len(completed)
        users = len({h.user_id for h in completed})
        average = round(total / users, 2) if users else 0.0
        report = PerformanceReport(
            generated_at=now,
            total_tasks_completed=total,
            distinct_users_who_completed_tasks=users,
            average_tasks_completed_per_user=average,
        )
        if self.cache is not None:
            self.cache.set(PERFORMANCE_REPORT_KEY, report)
        return report
