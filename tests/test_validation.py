import pytest

from taskboard.domain.enums import TaskPriority, TaskStatus
from taskboard.domain.errors import InvalidStatusError, InvalidTransitionError, ValidationError
from taskboard.domain.validation import parse_priority, require_text, validate_status_transition


@pytest.mark.parametrize(
    "new, old",
    [
        ("Pending", "Pending"),
        ("InProgress", "Pending"),
        ("Completed", "InProgress"),
        ("Pending", "InProgress"),
        ("Completed", "Completed"),
        (TaskStatus.COMPLETED, TaskStatus.PENDING),
    ],
)
def test_allowed_transitions(new, old):
    assert validate_status_transition(new, old) == TaskStatus(new)


@pytest.mark.parametrize("new", [None, "", "Done", "pending", 1])
def test_unknown_status_is_invalid(new):
    with pytest.raises(InvalidStatusError):
        validate_status_transition(new, "Pending")


@pytest.mark.parametrize("new", ["Pending", "InProgress", TaskStatus.IN_PROGRESS])
def test_completed_cannot_be_left(new):
    with pytest.raises(InvalidTransitionError):
        validate_status_transition(new, TaskStatus.COMPLETED)


def test_invalid_status_wins_over_transition_check():
    # value check runs first, even for a completed task
    with pytest.raises(InvalidStatusError):
        validate_status_transition("Reopened", TaskStatus.COMPLETED)


def test_parse_priority():
    assert parse_priority("High") == TaskPriority.HIGH
    assert parse_priority(TaskPriority.LOW) == TaskPriority.LOW
    with pytest.raises(ValidationError) as exc:
        parse_priority("Critical")
    assert exc.value.field == "priority"


def test_require_text_strips_and_rejects_blank():
    assert require_text("title", "  hi ") == "hi"
    with pytest.raises(ValidationError):
        require_text("title", "   ")
    with pytest.raises(ValidationError):
        require_text("title", None)
