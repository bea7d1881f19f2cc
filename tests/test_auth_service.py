import pytest

from errors import AuthenticationError, ConflictError


def test_sign_up_returns_public_user_and_token(auth_service, tokens) -> None:
    result = auth_service.sign_up("testuser", "test@example.com", "password123")

    public = result.to_dict()["user"]
    assert public["username"] == "testuser"
    assert public["email"] == "test@example.com"
    assert isinstance(public["id"], int)
    assert public["created_at"] is not None
    assert public["updated_at"] is not None
    assert "password_hash" not in public
    assert "password" not in public

    claims = tokens.verify(result.token)
    assert claims.user_id == public["id"]
    assert claims.email == "test@example.com"


def test_sign_up_stores_hashed_password(auth_service, user_store) -> None:
    auth_service.sign_up("testuser", "test@example.com", "password123")

    stored = user_store.get_by_email("test@example.com")
    assert stored.password_hash != "password123"
    assert auth_service.hasher.verify("password123", stored.password_hash)


def test_sign_up_rejects_duplicate_username(auth_service) -> None:
    auth_service.sign_up("testuser", "test@example.com", "password123")

    with pytest.raises(ConflictError, match="(?i)username already exists"):
        auth_service.sign_up("testuser", "different@example.com", "password123")


def test_sign_up_rejects_duplicate_email(auth_service) -> None:
    auth_service.sign_up("testuser", "test@example.com", "password123")

    with pytest.raises(ConflictError, match="(?i)email already exists"):
        auth_service.sign_up("differentuser", "test@example.com", "password123")


def test_username_conflict_reported_before_email(auth_service) -> None:
    auth_service.sign_up("testuser", "test@example.com", "password123")

    with pytest.raises(ConflictError, match="(?i)username"):
        auth_service.sign_up("testuser", "test@example.com", "password123")


def test_sign_in_with_valid_credentials(auth_service, tokens) -> None:
    signed_up = auth_service.sign_up("testuser", "test@example.com", "password123")

    result = auth_service.sign_in("test@example.com", "password123")

    assert result.user.id == signed_up.user.id
    assert "password_hash" not in result.to_dict()["user"]
    assert tokens.verify(result.token).user_id == signed_up.user.id


def test_sign_in_failures_share_one_message(auth_service) -> None:
    auth_service.sign_up("testuser", "test@example.com", "password123")

    with pytest.raises(AuthenticationError) as wrong_password:
        auth_service.sign_in("test@example.com", "wrongpassword")
    with pytest.raises(AuthenticationError) as unknown_email:
        auth_service.sign_in("nobody@example.com", "password123")

    assert wrong_password.value.message == unknown_email.value.message
    assert wrong_password.value.message.lower() == "invalid email or password"
