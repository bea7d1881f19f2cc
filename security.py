"""
Password hashing and bearer-token signing.

Passwords are hashed with Werkzeug utilities. Tokens are signed and
timestamped with itsdangerous using the application's SECRET_KEY, so a
client can read the payload but cannot forge or alter it.
"""

from dataclasses import dataclass
from datetime import timedelta

from itsdangerous import BadData, URLSafeTimedSerializer
from werkzeug.security import check_password_hash, generate_password_hash


class PasswordHasher:
    """One-way salted hashing. Length rules belong to the sign-up form."""

    def __init__(self, method: str = "scrypt"):
        self.method = method

    def hash(self, password: str) -> str:
        return generate_password_hash(password, method=self.method)

    def verify(self, password: str, password_hash: str) -> bool:
        try:
            return check_password_hash(password_hash, password)
        except ValueError:
            # Unknown or truncated hash format stored on the row
            return False


@dataclass(frozen=True)
class TokenClaims:
    user_id: int
    email: str


class TokenSigner:
    """
    Issues and verifies signed bearer tokens carrying {user_id, email}.

    verify() never raises: expired, tampered, malformed or wrongly shaped
    tokens all come back as None.
    """

    salt = "auth-token"

    def __init__(self, secret_key: str, max_age: timedelta = timedelta(hours=24)):
        self.max_age = max_age
        self._serializer = URLSafeTimedSerializer(secret_key, salt=self.salt)

    def issue(self, user_id: int, email: str) -> str:
        return self._serializer.dumps({"user_id": user_id, "email": email})

    def verify(self, token):
        if not token or not isinstance(token, str):
            return None

        try:
            payload = self._serializer.loads(
                token, max_age=int(self.max_age.total_seconds())
            )
        except BadData:
            return None

        if not isinstance(payload, dict):
            return None
        user_id = payload.get("user_id")
        email = payload.get("email")
        if isinstance(user_id, bool) or not isinstance(user_id, int):
            return None
        if not isinstance(email, str):
            return None

        return TokenClaims(user_id=user_id, email=email)
