import logging

from taskboard.domain.enums import Collection, UserRole
from taskboard.domain.errors import UserNotFoundError, ValidationError
from taskboard.domain.user import User, UserId
from taskboard.domain.validation import require_text
from taskboard.ports.cache import USERS_ALL_KEY, Cache, user_key
from taskboard.ports.clock import Clock
from taskboard.ports.entity_store import EntityStore
from taskboard.ports.id_provider import IdProvider

logger = logging.getLogger(__name__)


def _parse_role(value: UserRole | str) -> UserRole:
    try:
        return UserRole(value)
    except ValueError:
        raise ValidationError("role", f"must be User or Manager, got {value!r}")


def _normalize_email(value: str | None) -> str:
    email = require_text("email", value).lower()
    if "@" not in email:
        raise ValidationError("email", "must contain '@'")
    return email


class UserService:
    """
    User registration, lookup and actor resolution.

    Reads go through the optional cache (`user:<id>`, `user:all`);
    every write drops the affected keys.
    """
    def __init__(self, store: EntityStore, id_provider: IdProvider, clock: Clock, *, cache: Cache | None = None) -> None:
        self.store = store
        self.id_provider = id_provider
        self.clock = clock
        self.cache = cache

    def _invalidate(self, *keys: str) -> None:
        if self.cache is not None:
            self.cache.invalidate(*keys)

    def create_user(self, name: str, email: str, role: UserRole | str = UserRole.USER) -> User:
        """
        Registers a user. Email is trimmed and lowercased and must be unique.

        :raises ValidationError: When name/email/role is malformed.
        :raises EntityAlreadyExistsError: When the email is already registered.
        """
        user = User(
            user_id=UserId(self.id_provider.new_id()),
            name=require_text("name", name),
            email=_normalize_email(email),
            role=_parse_role(role),
            created_at=self.clock.now(),
        )
        self.store.insert(Collection.USERS, user)
        self._invalidate(USERS_ALL_KEY)
        logger.info("User %s registered (%s)", user.user_id, user.role)
        return user

    def get_user(self, user_id: UserId) -> User:
        """
        :raises UserNotFoundError: When no user has `user_id`.
        """
        key = user_key(user_id)
        if self.cache is not None:
            cached = self.cache.get(key)
            if cached is not None:
                return cached
        user = self.store.find_by_id(Collection.USERS, user_id)
        if user is None:
            raise UserNotFoundError(user_id)
        if self.cache is not None:
            self.cache.set(key, user)
        return user

    def list_users(self) -> list[User]:
        if self.cache is not None:
            cached = self.cache.get(USERS_ALL_KEY)
            if cached is not None:
                return list(cached)
        users = self.store.find_where(Collection.USERS)
        if self.cache is not None:
            self.cache.set(USERS_ALL_KEY, tuple(users))
        return users

    def update_user(
        self,
        user_id: UserId,
        *,
        name: str | None = None,
        email: str | None = None,
        role: UserRole | str | None = None,
    ) -> User:
        changes: dict[str, object] = {}
        if name is not None:
            changes["name"] = require_text("name", name)
        if email is not None:
            changes["email"] = _normalize_email(email)
        if role is not None:
            changes["role"] = _parse_role(role)

        updated = self.store.update_by_id(Collection.USERS, user_id, changes)
        if updated is None:
            raise UserNotFoundError(user_id)
        self._invalidate(USERS_ALL_KEY, user_key(user_id))
        return updated

    def delete_user(self, user_id: UserId) -> User:
        removed = self.store.delete_by_id(Collection.USERS, user_id)
        if removed is None:
            raise UserNotFoundError(user_id)
        self._invalidate(USERS_ALL_KEY, user_key(user_id))
        logger.info("User %s deleted", user_id)
        return removed

    def resolve_actor(self, user_id: str | None) -> User:
        """
        Checks the caller before any task/project/report operation.

        :raises ValidationError: When `user_id` is missing or blank.
        :raises UserNotFoundError: When the user does not exist.
        """
        if user_id is None or not str(user_id).strip():
            raise ValidationError("actor", "user id is missing")
        return self.get_user(UserId(str(user_id).strip()))
