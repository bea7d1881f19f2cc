from pathlib import Path

import pytest

from sessions import ClientSession, FileSessionStore, MemorySessionStore

AUTH_RESPONSE = {
    "user": {"id": 1, "username": "testuser", "email": "test@example.com"},
    "token": "signed-token",
}


@pytest.fixture(params=["memory", "file"])
def store(request, tmp_path: Path):
    if request.param == "memory":
        return MemorySessionStore()
    return FileSessionStore(tmp_path / "auth" / "session.json")


def test_session_set_get_clear(store) -> None:
    assert store.get() is None

    session = ClientSession.from_auth_response(AUTH_RESPONSE)
    store.set(session)
    assert store.get() == session
    assert store.get().user["username"] == "testuser"

    store.clear()
    assert store.get() is None

    # Clearing twice is harmless
    store.clear()


def test_file_session_survives_a_new_store(tmp_path: Path) -> None:
    path = tmp_path / "session.json"
    FileSessionStore(path).set(ClientSession.from_auth_response(AUTH_RESPONSE))

    assert FileSessionStore(path).get().token == "signed-token"


@pytest.mark.parametrize("content", ["{not json", '{"token": "t"}', '{"token": 1, "user": {}}', "[]"])
def test_corrupt_session_file_is_discarded(tmp_path: Path, content: str) -> None:
    path = tmp_path / "session.json"
    path.write_text(content, encoding="utf-8")

    assert FileSessionStore(path).get() is None
    assert not path.exists()
