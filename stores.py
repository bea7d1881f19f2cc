"""
Credential store: persistence ports used by the services.

The services depend on the UserStore / TaskStore protocols instead of a
concrete database, so the same service code runs against:

- SQLAlchemyUserStore / SQLAlchemyTaskStore: backed by a SQLAlchemy session
  (production, and the HTTP tests)
- MemoryUserStore / MemoryTaskStore: plain dictionaries (fast unit tests)

Every task operation is scoped by both task id AND owner id, so one user can
never read or change another user's rows through this layer.
"""

import itertools
import logging
from typing import Optional, Protocol

from sqlalchemy import false
from sqlalchemy.exc import IntegrityError

from errors import ConflictError
from models import Task, User

logger = logging.getLogger(__name__)

# Range of a SQLite INTEGER primary key
MIN_ROW_ID = -(2**63)
MAX_ROW_ID = 2**63 - 1

# Task columns a partial update is allowed to touch
UPDATABLE_TASK_FIELDS = ("title", "description", "due_date", "completed", "updated_at")


class UserStore(Protocol):
    def get_by_username(self, username: str) -> Optional[User]: ...
    def get_by_email(self, email: str) -> Optional[User]: ...
    def create(self, *, username: str, email: str, password_hash: str, now) -> User: ...


class TaskStore(Protocol):
    def create(self, *, user_id: int, title: str, description, due_date, now) -> Task: ...
    def list_for_user(self, user_id: int) -> list: ...
    def get_owned(self, user_id: int, task_id: int) -> Optional[Task]: ...
    def update_owned(self, user_id: int, task_id: int, changes: dict) -> Optional[Task]: ...
    def delete_owned(self, user_id: int, task_id: int) -> bool: ...


def _check_task_changes(changes: dict) -> None:
    unknown = set(changes) - set(UPDATABLE_TASK_FIELDS)
    if unknown:
        raise ValueError(f"Cannot update task fields: {', '.join(sorted(unknown))}")


# -----------------------------
# SQLAlchemy-backed stores
# -----------------------------


class SQLAlchemyUserStore:
    def __init__(self, session):
        self.session = session

    def get_by_username(self, username):
        return self.session.query(User).filter_by(username=username).first()

    def get_by_email(self, email):
        return self.session.query(User).filter_by(email=email).first()

    def create(self, *, username, email, password_hash, now):
        user = User(
            username=username,
            email=email,
            password_hash=password_hash,
            created_at=now,
            updated_at=now,
        )
        self.session.add(user)
        try:
            self.session.commit()
        except IntegrityError:
            # Lost a race against another sign-up with the same username/email
            self.session.rollback()
            logger.info("Unique constraint rejected new user %r", username)
            raise ConflictError("Username or email already exists")
        return user


class SQLAlchemyTaskStore:
    def __init__(self, session):
        self.session = session

    def _owned(self, user_id, task_id):
        """The one ownership predicate shared by select, update and delete."""
        query = self.session.query(Task)
        if not MIN_ROW_ID <= task_id <= MAX_ROW_ID:
            # No row can carry an id the database cannot even store
            return query.filter(false())
        return query.filter_by(id=task_id, user_id=user_id)

    def create(self, *, user_id, title, description, due_date, now):
        task = Task(
            user_id=user_id,
            title=title,
            description=description,
            due_date=due_date,
            completed=False,
            created_at=now,
            updated_at=now,
        )
        self.session.add(task)
        self.session.commit()
        return task

    def list_for_user(self, user_id):
        return (
            self.session.query(Task)
            .filter_by(user_id=user_id)
            .order_by(Task.created_at.desc(), Task.id.desc())
            .all()
        )

    def get_owned(self, user_id, task_id):
        return self._owned(user_id, task_id).first()

    def update_owned(self, user_id, task_id, changes):
        _check_task_changes(changes)
        # Single UPDATE ... WHERE id = ? AND user_id = ?
        updated = self._owned(user_id, task_id).update(changes, synchronize_session="fetch")
        self.session.commit()
        if not updated:
            return None
        return self.get_owned(user_id, task_id)

    def delete_owned(self, user_id, task_id):
        deleted = self._owned(user_id, task_id).delete(synchronize_session="fetch")
        self.session.commit()
        return deleted > 0


# -----------------------------
# In-memory stores
# -----------------------------


def _copy_user(user):
    return User(
        id=user.id,
        username=user.username,
        email=user.email,
        password_hash=user.password_hash,
        created_at=user.created_at,
        updated_at=user.updated_at,
    )


def _copy_task(task):
    return Task(
        id=task.id,
        user_id=task.user_id,
        title=task.title,
        description=task.description,
        due_date=task.due_date,
        completed=task.completed,
        created_at=task.created_at,
        updated_at=task.updated_at,
    )


class MemoryUserStore:
    """
    Dictionary-backed UserStore.

    Hands out copies so callers see snapshots, the same way rows read from
    a database do not change under the caller's feet.
    """

    def __init__(self):
        self._users = {}
        self._ids = itertools.count(1)

    def _find(self, **criteria):
        for user in self._users.values():
            if all(getattr(user, key) == value for key, value in criteria.items()):
                return _copy_user(user)
        return None

    def get_by_username(self, username):
        return self._find(username=username)

    def get_by_email(self, email):
        return self._find(email=email)

    def create(self, *, username, email, password_hash, now):
        if self._find(username=username) or self._find(email=email):
            raise ConflictError("Username or email already exists")

        user = User(
            id=next(self._ids),
            username=username,
            email=email,
            password_hash=password_hash,
            created_at=now,
            updated_at=now,
        )
        self._users[user.id] = user
        return _copy_user(user)


class MemoryTaskStore:
    def __init__(self):
        self._tasks = {}
        self._ids = itertools.count(1)

    def _owned(self, user_id, task_id):
        task = self._tasks.get(task_id)
        if task is None or task.user_id != user_id:
            return None
        return task

    def create(self, *, user_id, title, description, due_date, now):
        task = Task(
            id=next(self._ids),
            user_id=user_id,
            title=title,
            description=description,
            due_date=due_date,
            completed=False,
            created_at=now,
            updated_at=now,
        )
        self._tasks[task.id] = task
        return _copy_task(task)

    def list_for_user(self, user_id):
        owned = [task for task in self._tasks.values() if task.user_id == user_id]
        owned.sort(key=lambda task: (task.created_at, task.id), reverse=True)
        return [_copy_task(task) for task in owned]

    def get_owned(self, user_id, task_id):
        task = self._owned(user_id, task_id)
        return _copy_task(task) if task is not None else None

    def update_owned(self, user_id, task_id, changes):
        _check_task_changes(changes)
        task = self._owned(user_id, task_id)
        if task is None:
            return None
        for key, value in changes.items():
            setattr(task, key, value)
        return _copy_task(task)

    def delete_owned(self, user_id, task_id):
        if self._owned(user_id, task_id) is None:
            return False
        del self._tasks[task_id]
        return True
