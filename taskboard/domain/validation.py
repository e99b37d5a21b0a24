from taskboard.domain.enums import TaskStatus, TaskPriority
from taskboard.domain.errors import InvalidStatusError, InvalidTransitionError, ValidationError


### COMMENTS
# Pure checks shared by the services. No I/O, no clock, no store access.


def parse_status(value: object) -> TaskStatus:
    """
    Converts `value` to a TaskStatus.

    :raises InvalidStatusError: When `value` is missing or not a known status.
    """
    if isinstance(value, TaskStatus):
        return value
    if not value or not isinstance(value, str):
        raise InvalidStatusError(value)
    try:
        return TaskStatus(value)
    except ValueError:
        raise InvalidStatusError(value)


def validate_status_transition(new_value: object, old_value: object) -> TaskStatus:
    """
    Validates moving a task from `old_value` to `new_value`.

    - Missing or unknown `new_value` -> `InvalidStatusError`.
    - Leaving Completed -> `InvalidTransitionError`.
    - Anything else is accepted, including Completed -> Completed.

    :return: `new_value` as a TaskStatus.
    """
    new_status = parse_status(new_value)
    if old_value == TaskStatus.COMPLETED and new_status != TaskStatus.COMPLETED:
        raise InvalidTransitionError(old_value, new_status)
    return new_status


def parse_priority(value: object) -> TaskPriority:
    if isinstance(value, TaskPriority):
        return value
    try:
        return TaskPriority(value)
    except ValueError:
        allowed = ", ".join(p.value for p in TaskPriority)
        raise ValidationError("priority", f"must be one of {allowed}, got {value!r}")


def require_text(field: str, value: str | None) -> str:
    """Returns `value` stripped; blank or missing text is a ValidationError."""
    if value is None or not str(value).strip():
        raise ValidationError(field, "must not be empty")
    return str(value).strip()
