"""
Auth and task services.

Both services receive their collaborators (stores, hasher, token signer,
clock) from the caller; app.create_app() wires the production ones.
"""

import logging
from dataclasses import dataclass

from errors import AuthenticationError, ConflictError, NotFoundError
from models import User, utcnow
from security import PasswordHasher, TokenSigner
from stores import TaskStore, UserStore

logger = logging.getLogger(__name__)

# Shared by sign-in failures so callers cannot tell which check failed
INVALID_CREDENTIALS = "Invalid email or password"

TASK_NOT_FOUND = "Task not found or access denied"


@dataclass
class AuthResult:
    user: User
    token: str

    def to_dict(self) -> dict:
        return {"user": self.user.to_public_dict(), "token": self.token}


class AuthService:
    def __init__(self, users: UserStore, hasher: PasswordHasher, tokens: TokenSigner, clock=utcnow):
        self.users = users
        self.hasher = hasher
        self.tokens = tokens
        self.clock = clock

    def sign_up(self, username: str, email: str, password: str) -> AuthResult:
        """
        Register a new account and sign it in.

        Username is checked before email, so when both are taken the
        username conflict is the one reported.
        """
        if self.users.get_by_username(username) is not None:
            raise ConflictError("Username already exists")

        if self.users.get_by_email(email) is not None:
            raise ConflictError("Email already exists")

        user = self.users.create(
            username=username,
            email=email,
            password_hash=self.hasher.hash(password),
            now=self.clock(),
        )
        logger.info("User %s signed up as %r", user.id, user.username)

        return AuthResult(user=user, token=self.tokens.issue(user.id, user.email))

    def sign_in(self, email: str, password: str) -> AuthResult:
        user = self.users.get_by_email(email)

        if user is None or not self.hasher.verify(password, user.password_hash):
            logger.info("Rejected sign-in attempt")
            raise AuthenticationError(INVALID_CREDENTIALS)

        logger.debug("User %s signed in", user.id)
        return AuthResult(user=user, token=self.tokens.issue(user.id, user.email))


class TaskService:
    """
    Ownership-scoped task CRUD.

    Every operation takes the user id taken from a verified token. A task
    owned by somebody else is treated exactly like a task that does not
    exist.
    """

    def __init__(self, tasks: TaskStore, clock=utcnow):
        self.tasks = tasks
        self.clock = clock

    def _load_owned(self, user_id, task_id):
        task = self.tasks.get_owned(user_id, task_id)
        if task is None:
            raise NotFoundError(TASK_NOT_FOUND)
        return task

    def create(self, user_id, title, description=None, due_date=None):
        task = self.tasks.create(
            user_id=user_id,
            title=title,
            description=description or None,
            due_date=due_date,
            now=self.clock(),
        )
        logger.info("User %s created task %s", user_id, task.id)
        return task

    def list(self, user_id):
        return self.tasks.list_for_user(user_id)

    def get(self, user_id, task_id):
        return self._load_owned(user_id, task_id)

    def update(self, user_id, task_id, changes=None):
        """
        Apply a partial update.

        Only keys present in `changes` are written. An explicit None for
        description or due_date clears the value; a missing key leaves it
        alone. updated_at always moves forward.
        """
        self._load_owned(user_id, task_id)

        values = dict(changes or {})
        values["updated_at"] = self.clock()

        task = self.tasks.update_owned(user_id, task_id, values)
        if task is None:
            # Deleted between the ownership check and the write
            raise NotFoundError(TASK_NOT_FOUND)

        logger.info("User %s updated task %s (%s)", user_id, task_id, ", ".join(sorted(changes or {})))
        return task

    def delete(self, user_id, task_id) -> bool:
        deleted = self.tasks.delete_owned(user_id, task_id)
        if deleted:
            logger.info("User %s deleted task %s", user_id, task_id)
        return deleted
