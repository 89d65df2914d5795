"""In-memory user store backing the CRUD endpoints."""

from __future__ import annotations

import threading

from common.models import User, UserBase

SEED_USERS = (
    User(id=1, name="Alice", role="Admin"),
    User(id=2, name="Bob", role="User"),
    User(id=3, name="Charlie", role="Manager"),
)


class UserNotFoundError(LookupError):
    def __init__(self, user_id: int):
        super().__init__(f"user {user_id} not found")
        self.user_id = user_id


class UserStore:
    """Ordered, append-only collection of users.

    Ids are assigned here as ``max(existing ids) + 1``. The lock covers the
    whole read-max-then-append so concurrent creates never share an id.
    """

    def __init__(self, users: list[User] | None = None):
        self._lock = threading.Lock()
        self._users: list[User] = list(users or [])

    @classmethod
    def seeded(cls) -> UserStore:
        return cls([user.model_copy() for user in SEED_USERS])

    def __len__(self) -> int:
        with self._lock:
            return len(self._users)

    def list(self) -> list[User]:
        with self._lock:
            return list(self._users)

    def get(self, user_id: int) -> User:
        with self._lock:
            for user in self._users:
                if user.id == user_id:
                    return user
        raise UserNotFoundError(user_id)

    def create(self, payload: UserBase) -> User:
        with self._lock:
            max_id = max((user.id for user in self._users), default=0)
            user = User(id=max_id + 1, name=payload.name, role=payload.role)
            self._users.append(user)
            return user
