from datetime import datetime

import pytest

from errors import ConflictError
from models import db
from stores import MemoryTaskStore, MemoryUserStore, SQLAlchemyTaskStore, SQLAlchemyUserStore

NOW = datetime(2024, 1, 1, 12, 0, 0)


@pytest.fixture(params=["sqlalchemy", "memory"])
def stores(request, app):
    if request.param == "sqlalchemy":
        return SQLAlchemyUserStore(db.session), SQLAlchemyTaskStore(db.session)
    return MemoryUserStore(), MemoryTaskStore()


def make_users(users):
    owner = users.create(username="owner", email="owner@example.com", password_hash="x", now=NOW)
    other = users.create(username="other", email="other@example.com", password_hash="x", now=NOW)
    return owner.id, other.id


def test_user_uniqueness_is_enforced_by_the_store(stores) -> None:
    users, _ = stores
    users.create(username="testuser", email="test@example.com", password_hash="x", now=NOW)

    with pytest.raises(ConflictError):
        users.create(username="testuser", email="new@example.com", password_hash="x", now=NOW)
    with pytest.raises(ConflictError):
        users.create(username="newuser", email="test@example.com", password_hash="x", now=NOW)

    assert users.get_by_username("newuser") is None


def test_lookup_by_username_and_email(stores) -> None:
    users, _ = stores
    created = users.create(username="testuser", email="test@example.com", password_hash="x", now=NOW)

    assert users.get_by_username("testuser").id == created.id
    assert users.get_by_email("test@example.com").id == created.id
    assert users.get_by_email("missing@example.com") is None


def test_same_created_at_breaks_ties_by_id(stores) -> None:
    users, tasks = stores
    owner, _ = make_users(users)

    first = tasks.create(user_id=owner, title="First", description=None, due_date=None, now=NOW)
    second = tasks.create(user_id=owner, title="Second", description=None, due_date=None, now=NOW)

    assert [task.id for task in tasks.list_for_user(owner)] == [second.id, first.id]


def test_update_is_scoped_by_owner(stores) -> None:
    users, tasks = stores
    owner, other = make_users(users)
    task = tasks.create(user_id=owner, title="Mine", description="keep", due_date=None, now=NOW)

    assert tasks.update_owned(other, task.id, {"title": "Hijacked"}) is None
    assert tasks.get_owned(owner, task.id).title == "Mine"

    updated = tasks.update_owned(owner, task.id, {"title": "Renamed", "description": None})
    assert updated.title == "Renamed"
    assert updated.description is None
    assert updated.user_id == owner


def test_update_rejects_immutable_columns(stores) -> None:
    users, tasks = stores
    owner, other = make_users(users)
    task = tasks.create(user_id=owner, title="Mine", description=None, due_date=None, now=NOW)

    with pytest.raises(ValueError):
        tasks.update_owned(owner, task.id, {"user_id": other})


def test_delete_is_scoped_by_owner(stores) -> None:
    users, tasks = stores
    owner, other = make_users(users)
    task = tasks.create(user_id=owner, title="Mine", description=None, due_date=None, now=NOW)

    assert tasks.delete_owned(other, task.id) is False
    assert tasks.get_owned(owner, task.id) is not None

    assert tasks.delete_owned(owner, task.id) is True
    assert tasks.get_owned(owner, task.id) is None
    assert tasks.delete_owned(owner, task.id) is False


def test_out_of_range_id_matches_nothing(stores) -> None:
    users, tasks = stores
    owner, _ = make_users(users)
    tasks.create(user_id=owner, title="Mine", description=None, due_date=None, now=NOW)

    for task_id in (2**63, -(2**63) - 1, 10**30):
        assert tasks.get_owned(owner, task_id) is None
        assert tasks.update_owned(owner, task_id, {"title": "Nope"}) is None
        assert tasks.delete_owned(owner, task_id) is False
