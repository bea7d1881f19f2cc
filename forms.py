from datetime import datetime, timezone

from flask_wtf import FlaskForm
from wtforms import Field
from wtforms.validators import Length, Regexp, StopValidation

EMAIL_PATTERN = r"^[^\s@]+@[^\s@]+\.[^\s@]+$"


def parse_iso_datetime(value: str) -> datetime:
    """Parse an ISO-8601 date or datetime into a naive UTC datetime."""
    if value.endswith("Z"):
        value = value[:-1] + "+00:00"
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed


# -----------------------------
# Fields
# -----------------------------


class JSONField(Field):
    """
    Field fed from a decoded JSON object rather than an HTML form.

    raw_data is [] when the key was missing from the payload and [value]
    when it was sent, so "omitted" and "explicit null" stay distinct.
    Values of the wrong JSON type are rejected instead of coerced.
    """

    json_types = ()
    type_message = "Invalid value."

    def process_formdata(self, valuelist):
        if not valuelist:
            return

        value = valuelist[0]
        if value is None:
            self.data = None
            return

        # bool is an int subclass in Python but not a number in JSON
        if isinstance(value, bool) and bool not in self.json_types:
            raise ValueError(self.type_message)
        if not isinstance(value, self.json_types):
            raise ValueError(self.type_message)

        self.data = self.coerce(value)

    def coerce(self, value):
        return value

    def pre_validate(self, form):
        # Type errors were already recorded while processing
        if self.process_errors:
            raise StopValidation()

    @property
    def provided(self) -> bool:
        return bool(self.raw_data)


class StringJSONField(JSONField):
    json_types = (str,)
    type_message = "Expected a string."


class IntegerJSONField(JSONField):
    json_types = (int,)
    type_message = "Expected an integer."


class BooleanJSONField(JSONField):
    json_types = (bool,)
    type_message = "Expected a boolean."


class DateTimeJSONField(JSONField):
    json_types = (str,)
    type_message = "Expected an ISO-8601 date string."

    def coerce(self, value):
        try:
            return parse_iso_datetime(value)
        except (ValueError, OverflowError):
            raise ValueError("Not a valid ISO-8601 date.")


# -----------------------------
# Validators
# -----------------------------


class Omittable:
    """Stops the chain when the key is missing from the payload."""

    field_flags = {"optional": True}

    def __call__(self, form, field):
        if not field.raw_data:
            field.errors[:] = []
            raise StopValidation()


class Nullable:
    """Stops the chain when the key was sent as null."""

    def __call__(self, form, field):
        if field.raw_data and field.raw_data[0] is None:
            raise StopValidation()


class Required:
    """Fails when the key is missing or null."""

    field_flags = {"required": True}

    def __init__(self, message=None):
        self.message = message or "This field is required."

    def __call__(self, form, field):
        if not field.raw_data or field.raw_data[0] is None:
            raise StopValidation(self.message)


# -----------------------------
# Forms
# -----------------------------


class JSONForm(FlaskForm):
    """
    Base for procedure inputs.

    Requests authenticate with bearer tokens rather than cookies, so CSRF
    protection does not apply here.
    """

    class Meta:
        csrf = False

    def first_error(self):
        """(field name, message) for the first failing field, in declaration order."""
        for name, field in self._fields.items():
            if field.errors:
                return name, field.errors[0]
        return None, None

    def provided_data(self, exclude=()) -> dict:
        """Only the fields the caller actually sent (null included)."""
        return {
            name: field.data
            for name, field in self._fields.items()
            if name not in exclude and field.provided
        }


class SignUpForm(JSONForm):
    """Registration input: username, email and password."""

    username = StringJSONField(
        "Username",
        validators=[
            Required(),
            Length(min=3, max=50, message="Username must be between 3 and 50 characters."),
        ],
    )
    email = StringJSONField(
        "Email",
        validators=[
            Required(),
            Length(max=255, message="Email must be at most 255 characters."),
            Regexp(EMAIL_PATTERN, message="Invalid email address."),
        ],
    )
    password = StringJSONField(
        "Password",
        validators=[
            Required(),
            Length(min=6, message="Password should be at least 6 characters long."),
        ],
    )


class SignInForm(JSONForm):
    email = StringJSONField(
        "Email",
        validators=[Required(), Regexp(EMAIL_PATTERN, message="Invalid email address.")],
    )
    password = StringJSONField("Password", validators=[Required()])


class CreateTaskForm(JSONForm):
    """
    Input for creating a task.

    New tasks are always incomplete, so "completed" is not accepted here.
    """

    title = StringJSONField(
        "Title",
        validators=[
            Required(message="Please provide a title for the task."),
            Length(min=1, max=200, message="Title must be between 1 and 200 characters."),
        ],
    )
    description = StringJSONField("Description", validators=[Omittable(), Nullable()])
    due_date = DateTimeJSONField("Due date", validators=[Omittable(), Nullable()])


class TaskIdForm(JSONForm):
    id = IntegerJSONField("Task id", validators=[Required()])


class UpdateTaskForm(TaskIdForm):
    """
    Partial update: every field except id may be left out.

    title and completed may be omitted but not nulled; description and
    due_date accept null as an explicit "clear this value".
    """

    title = StringJSONField(
        "Title",
        validators=[
            Omittable(),
            Required(message="Title cannot be null."),
            Length(min=1, max=200, message="Title must be between 1 and 200 characters."),
        ],
    )
    description = StringJSONField("Description", validators=[Omittable(), Nullable()])
    due_date = DateTimeJSONField("Due date", validators=[Omittable(), Nullable()])
    completed = BooleanJSONField(
        "Completed",
        validators=[Omittable(), Required(message="Completed cannot be null.")],
    )

    def changes(self) -> dict:
        return self.provided_data(exclude=("id",))
