"""
Typed errors raised by the services and the RPC gateway.

Every error carries an RPC code and the HTTP status the gateway answers with,
so the error handler in app.py can turn any of them into a JSON envelope.
"""


class RPCError(Exception):
    code = "INTERNAL_SERVER_ERROR"
    http_status = 500
    default_message = "Internal server error"

    def __init__(self, message=None):
        self.message = message or self.default_message
        super().__init__(self.message)

    def to_dict(self) -> dict:
        return {"code": self.code, "message": self.message}


class ValidationError(RPCError):
    """Input payload does not match the procedure's declared shape."""

    code = "BAD_REQUEST"
    http_status = 400
    default_message = "Invalid input"

    def __init__(self, message=None, field=None):
        super().__init__(message)
        self.field = field

    def to_dict(self) -> dict:
        data = super().to_dict()
        if self.field:
            data["field"] = self.field
        return data


class ConflictError(RPCError):
    code = "CONFLICT"
    http_status = 409
    default_message = "Resource already exists"


class AuthenticationError(RPCError):
    """Bad sign-in credentials. Never says which of the two was wrong."""

    code = "UNAUTHORIZED"
    http_status = 401
    default_message = "Invalid email or password"


class Unauthorized(RPCError):
    code = "UNAUTHORIZED"
    http_status = 401
    default_message = "Authentication required"


class NotFoundError(RPCError):
    code = "NOT_FOUND"
    http_status = 404
    default_message = "Not found"
