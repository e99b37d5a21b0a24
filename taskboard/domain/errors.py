

### COMMENTS
# ============================================
# Domain error conventions
# ============================================
# - Adapters (stores):
#     * detect duplicates and translate driver errors (IntegrityError,
#       OperationalError, OSError) into DomainError subclasses
#
# - Services:
#     * validate caller input and raise ValidationError / InvalidStatusError
#     * raise NotFoundError subclasses when a required entity is missing
#     * raise BusinessRuleViolation subclasses when a rule forbids the operation
#     * every check happens before the first write
#
# - UI (CLI):
#     * catches DomainError and prints a friendly panel
#     * anything else is a technical failure and propagates


class DomainError(Exception):
    """Base class for all business errors raised by taskboard.

    Lets the outer layer tell domain failures (bad input, broken rules,
    missing entities) apart from technical ones. Not raised directly.
    """


class NotFoundError(DomainError):
    """A referenced entity does not exist. Never retried automatically."""

    entity = "Entity"

    def __init__(self, entity_id: str):
        self.entity_id = entity_id
        super().__init__(self.__str__())

    def __str__(self):
        return f"{self.entity} with ID {self.entity_id} does not exist."


class UserNotFoundError(NotFoundError):
    entity = "User"


class ProjectNotFoundError(NotFoundError):
    entity = "Project"


class TaskNotFoundError(NotFoundError):
    """Raised by services when `find_by_id` returns `None` for a task that the
    operation requires (update, status change, comment, delete, history)."""

    entity = "Task"


class BusinessRuleViolation(DomainError):
    """A business rule forbids the operation. Carries a human readable message."""

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)

    def __str__(self):
        return self.message


class TaskLimitReachedError(BusinessRuleViolation):
    def __init__(self, project_id: str, limit: int):
        self.project_id = project_id
        self.limit = limit
        super().__init__(f"Task limit reached: project {project_id} already has {limit} tasks.")


class ProjectHasActiveTasksError(BusinessRuleViolation):
    def __init__(self, project_id: str):
        self.project_id = project_id
        super().__init__(
            f"Project {project_id} cannot be removed while it has pending or in-progress tasks. "
            "Complete or remove them first."
        )


class PermissionDeniedError(BusinessRuleViolation):
    def __init__(self, user_id: str, action: str):
        self.user_id = user_id
        self.action = action
        super().__init__(f"User {user_id} is not allowed to {action}.")


class InvalidStatusError(DomainError):
    """The supplied status is missing or not one of Pending, InProgress, Completed."""

    def __init__(self, value: object):
        self.value = value
        super().__init__(self.__str__())

    def __str__(self):
        return f"Invalid status: {self.value!r}."


class InvalidTransitionError(DomainError):
    """The status change is illegal (a completed task cannot be reopened)."""

    def __init__(self, old_value: object, new_value: object):
        self.old_value = old_value
        self.new_value = new_value
        super().__init__(self.__str__())

    def __str__(self):
        return f"Cannot change status from {self.old_value} to {self.new_value}: a completed task cannot be reopened."


class ValidationError(DomainError):
    """Input data does not satisfy the field rules.

    Examples:
    - the title is blank,
    - the due date is missing,
    - the priority is not one of Low, Medium, High.
    Holds the offending `field` so the UI can point at it.
    """

    def __init__(self, field: str, message: str):
        self.field = field
        self.message = message
        super().__init__(self.__str__())

    def __str__(self):
        return f"Validation error on field '{self.field}': {self.message}"


class EntityAlreadyExistsError(DomainError):
    """Raised by stores when an insert collides with an existing id or unique field."""

    def __init__(self, collection: str, key: str):
        self.collection = collection
        self.key = key
        super().__init__(self.__str__())

    def __str__(self):
        return f"An entry for {self.key} already exists in '{self.collection}'."


class StoreUnavailableError(DomainError):
    """The underlying store cannot be reached. Services let it propagate."""
