from typing import Protocol, Optional, Mapping, Any
from taskboard.domain.enums import Collection


### COMMENTS
# ==========================================================
# Entity store contract (ports/entity_store.py).
# ==========================================================
# One port for the four collections (users, projects, tasks, history).
# - Entities are the frozen dataclasses from `taskboard.domain`.
# - Predicates are plain mappings `field -> value`:
#     * list / tuple / set / frozenset value -> membership (`field IN (...)`),
#     * any other value -> equality.
# - Adapters map technical errors onto domain errors
#   (duplicate key -> EntityAlreadyExistsError, unreachable -> StoreUnavailableError).
# - No business rules here; validation belongs to the services.

Predicate = Mapping[str, Any]


class EntityStore(Protocol):
    """Persistence port used by every service.

    Adapters must:
    - make reads and writes of a single id atomic,
    - return `None` (not raise) for a missing id on lookup/update/delete,
    - sort `find_where` results by creation time, then id (stable order).
    """

    def find_by_id(self, collection: Collection, entity_id: str) -> Optional[Any]:
        """Returns the entity with `entity_id` or `None`."""

    def find_where(self, collection: Collection, predicate: Predicate | None = None) -> list[Any]:
        """Returns all entities matching `predicate` (all entities when `None`).

        Ordering: `created_at` (or `change_date` for history) ASC, then id ASC.
        """

    def insert(self, collection: Collection, entity: Any) -> Any:
        """Stores a new entity and returns it.

        Domain errors:
            EntityAlreadyExistsError: id (or a unique field such as a user email) collides.
        """

    def update_by_id(self, collection: Collection, entity_id: str, changes: Mapping[str, Any]) -> Optional[Any]:
        """Applies `changes` (attribute -> new value) and returns the updated entity.

        Returns `None` when the id does not exist. An empty `changes` is a valid no-op write.
        """

    def delete_by_id(self, collection: Collection, entity_id: str) -> Optional[Any]:
        """Removes the entity and returns it, or `None` when it did not exist."""

    def delete_many(self, collection: Collection, predicate: Predicate) -> int:
        """Removes every entity matching `predicate`; returns how many were removed."""

    def count_where(self, collection: Collection, predicate: Predicate | None = None) -> int:
        """Live count of matching entities."""
