import dataclasses
import itertools
import threading
from typing import Any, Iterable, Mapping, Optional

from taskboard.adapters.entity_meta import ORDER_ATTR, UNIQUE_ATTRS, id_of
from taskboard.domain.enums import Collection
from taskboard.domain.errors import EntityAlreadyExistsError
from taskboard.ports.entity_store import Predicate

### COMMENTS
# ==========================================================
# In-memory adapter of the entity store (adapters/memory/entity_store.py).
# ==========================================================
# - Used by the tests and by the CLI when no database URL is configured.
# - Data lives in `_data[collection][id]` for the lifetime of the object.
# - One lock per collection: every call on a collection is atomic, which
#   covers the per-id atomicity the services rely on.
# - Entities are frozen dataclasses; an update stores a `dataclasses.replace` copy.
# - Every insert takes the next number of `_seq`; listings sort on
#   (created_at or change_date, insertion number), never on the id.


def _matches(entity: Any, predicate: Predicate | None) -> bool:
    if not predicate:
        return True
    for field, expected in predicate.items():
        value = getattr(entity, field)
        if isinstance(expected, (list, tuple, set, frozenset)):
            if value not in expected:
                return False
        elif value != expected:
            return False
    return True


class InMemoryEntityStore:
    """
    Entity store kept in dictionaries.

    :param initial: Optional seed, a mapping collection -> iterable of entities.
    Later duplicates in the seed overwrite earlier ones (seed only, not API).
    """
    def __init__(self, initial: Mapping[Collection, Iterable[Any]] | None = None) -> None:
        self._data: dict[Collection, dict[str, Any]] = {c: {} for c in Collection}
        self._locks = {c: threading.RLock() for c in Collection}
        self._seq = itertools.count(1)
        self._inserted: dict[Collection, dict[str, int]] = {c: {} for c in Collection}
        for collection, entities in (initial or {}).items():
            for e in entities:
                key = id_of(collection, e)
                self._data[collection][key] = e
                self._inserted[collection].setdefault(key, next(self._seq))

    def _check_unique(self, collection: Collection, entity: Any) -> None:
        own_id = id_of(collection, entity)
        for attr in UNIQUE_ATTRS.get(collection, ()):
            value = getattr(entity, attr)
            for other_id, other in self._data[collection].items():
                if other_id != own_id and getattr(other, attr) == value:
                    raise EntityAlreadyExistsError(str(collection), f"{attr}={value}")

    def find_by_id(self, collection: Collection, entity_id: str) -> Optional[Any]:
        with self._locks[collection]:
            return self._data[collection].get(str(entity_id))

    def find_where(self, collection: Collection, predicate: Predicate | None = None) -> list[Any]:
        with self._locks[collection]:
            found = [e for e in self._data[collection].values() if _matches(e, predicate)]
            order = ORDER_ATTR[collection]
            inserted = self._inserted[collection]
            found.sort(key=lambda e: (getattr(e, order), inserted[id_of(collection, e)]))
        return found

    def insert(self, collection: Collection, entity: Any) -> Any:
        key = id_of(collection, entity)
        with self._locks[collection]:
            if key in self._data[collection]:
                raise EntityAlreadyExistsError(str(collection), key)
            self._check_unique(collection, entity)
            self._data[collection][key] = entity
            self._inserted[collection][key] = next(self._seq)
        return entity

    def update_by_id(self, collection: Collection, entity_id: str, changes: Mapping[str, Any]) -> Optional[Any]:
        key = str(entity_id)
        with self._locks[collection]:
            current = self._data[collection].get(key)
            if current is None:
                return None
            updated = dataclasses.replace(current, **dict(changes))
            self._check_unique(collection, updated)
            self._data[collection][key] = updated
            return updated

    def delete_by_id(self, collection: Collection, entity_id: str) -> Optional[Any]:
        with self._locks[collection]:
            self._inserted[collection].pop(str(entity_id), None)
            return self._data[collection].pop(str(entity_id), None)

    def delete_many(self, collection: Collection, predicate: Predicate) -> int:
        with self._locks[collection]:
            doomed = [k for k, e in self._data[collection].items() if _matches(e, predicate)]
            for k in doomed:
                del self._data[collection][k]
                del self._inserted[collection][k]
            return len(doomed)

    def count_where(self, collection: Collection, predicate: Predicate | None = None) -> int:
        with self._locks[collection]:
            return sum(1 for e in self._data[collection].values() if _matches(e, predicate))
