from datetime import datetime, timezone

from flask_sqlalchemy import SQLAlchemy

# SQLAlchemy instance is created here and initialized in app.create_app()
db = SQLAlchemy()


def utcnow() -> datetime:
    """Current instant as a naive UTC datetime (what SQLite hands back)."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def _isoformat(value):
    return value.isoformat() if value is not None else None


class User(db.Model):
    """
    Registered account.

    username and email are both globally unique. The password hash stays
    on the row and is never part of any serialized form; clients only ever
    see the output of to_public_dict().
    """

    __tablename__ = "users"

    id = db.Column(db.Integer, primary_key=True)
    username = db.Column(db.String(50), unique=True, nullable=False, index=True)
    email = db.Column(db.String(255), unique=True, nullable=False, index=True)
    password_hash = db.Column(db.String(255), nullable=False)

    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime, nullable=False, default=utcnow)

    tasks = db.relationship("Task", backref="user", lazy=True)

    def to_public_dict(self) -> dict:
        return {
            "id": self.id,
            "username": self.username,
            "email": self.email,
            "created_at": _isoformat(self.created_at),
            "updated_at": _isoformat(self.updated_at),
        }

    def __repr__(self):
        return f"<User {self.username}>"


class Task(db.Model):
    """
    Task model.

    Fields:
    - id: primary key
    - user_id: owner, fixed at creation
    - title: 1-200 characters (required)
    - description: optional longer text
    - due_date: optional timestamp
    - completed: INCOMPLETE by default
    - created_at: set once when the task is created
    - updated_at: refreshed on every change
    """

    __tablename__ = "tasks"

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)

    title = db.Column(db.String(200), nullable=False)
    description = db.Column(db.Text, nullable=True)
    due_date = db.Column(db.DateTime, nullable=True)
    completed = db.Column(db.Boolean, nullable=False, default=False)

    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime, nullable=False, default=utcnow)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "title": self.title,
            "description": self.description,
            "due_date": _isoformat(self.due_date),
            "completed": self.completed,
            "created_at": _isoformat(self.created_at),
            "updated_at": _isoformat(self.updated_at),
        }

    def __repr__(self):
        status = "done" if self.completed else "open"
        return f"<Task {self.id} {status} {self.title!r}>"
