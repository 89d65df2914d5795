from concurrent.futures import ThreadPoolExecutor

import pytest

from common.models import UserBase
from test_api.store import UserNotFoundError, UserStore


def test_seeded_store():
    store = UserStore.seeded()
    assert [(u.id, u.name, u.role) for u in store.list()] == [
        (1, "Alice", "Admin"),
        (2, "Bob", "User"),
        (3, "Charlie", "Manager"),
    ]


def test_create_on_empty_store_starts_at_one():
    store = UserStore()
    user = store.create(UserBase(name="Dana", role="Tester"))
    assert user.id == 1
    assert len(store) == 1


def test_serial_creates_are_increasing_and_listed_in_order():
    store = UserStore.seeded()
    created = [store.create(UserBase(name=f"user-{i}", role="User")) for i in range(5)]
    ids = [u.id for u in created]
    assert ids == [4, 5, 6, 7, 8]
    assert store.list()[3:] == created
    assert len(store) == 8


def test_create_uses_max_id_not_length():
    store = UserStore([UserStore.seeded().get(3)])
    assert store.create(UserBase(name="Dana", role="Tester")).id == 4


def test_get_returns_created_user():
    store = UserStore.seeded()
    user = store.create(UserBase(name="Dana", role="Tester"))
    assert store.get(user.id) == user


def test_get_unknown_id():
    store = UserStore.seeded()
    with pytest.raises(UserNotFoundError) as exc_info:
        store.get(99)
    assert exc_info.value.user_id == 99


def test_list_is_a_snapshot():
    store = UserStore.seeded()
    users = store.list()
    users.clear()
    assert len(store) == 3


def test_concurrent_creates_get_unique_ids():
    store = UserStore.seeded()
    callers = 200

    def create(i):
        return store.create(UserBase(name=f"user-{i}", role="User")).id

    with ThreadPoolExecutor(max_workers=32) as pool:
        ids = list(pool.map(create, range(callers)))

    assert len(set(ids)) == callers
    assert sorted(ids) == list(range(4, 4 + callers))
    assert len(store) == 3 + callers
