import asyncio
from types import SimpleNamespace

import pytest
from supabase import AuthError as SupabaseAuthError, PostgrestAPIError

from notes_website.client.backend import SupabaseBackend
from notes_website.client.domain import AuthError, BackendError

ROW = {
    "id": 42,
    "title": "Groceries",
    "content": "milk",
    "user_id": "usr_1",
    "created_at": "2024-05-01T10:00:00+00:00",
}


def raw_session(user_id="usr_1", email="a@x.com"):
    return SimpleNamespace(user=SimpleNamespace(id=user_id, email=email))


class FakeQuery:
    """Records the builder chain and answers ``execute`` with canned rows."""

    def __init__(self, table, rows=None, error=None):
        self.steps = [("table", table)]
        self.rows = rows or []
        self.error = error

    def _step(self, *args):
        self.steps.append(args)
        return self

    def select(self, columns):
        return self._step("select", columns)

    def order(self, column, desc=False):
        return self._step("order", column, desc)

    def insert(self, values):
        return self._step("insert", values)

    def update(self, values):
        return self._step("update", values)

    def delete(self):
        return self._step("delete")

    def eq(self, column, value):
        return self._step("eq", column, value)

    async def execute(self):
        if self.error is not None:
            raise self.error
        return SimpleNamespace(data=self.rows)


class FakeAuth:
    def __init__(self, session=None, user=None, error=None):
        self.session = session
        self.user = user
        self.error = error
        self.requests = []
        self.listeners = []

    async def _answer(self, name, payload, result):
        self.requests.append((name, payload))
        if self.error is not None:
            raise self.error
        return result

    async def get_session(self):
        return await self._answer("get_session", None, self.session)

    async def get_user(self):
        return await self._answer("get_user", None, SimpleNamespace(user=self.user))

    async def sign_up(self, credentials):
        return await self._answer("sign_up", credentials, SimpleNamespace(session=self.session))

    async def sign_in_with_password(self, credentials):
        return await self._answer("sign_in", credentials, SimpleNamespace(session=self.session))

    async def sign_out(self):
        return await self._answer("sign_out", None, None)

    def on_auth_state_change(self, callback):
        self.listeners.append(callback)


class FakeClient:
    def __init__(self, auth=None, rows=None, error=None):
        self.auth = auth or FakeAuth()
        self.rows = rows
        self.error = error
        self.queries = []

    def table(self, name):
        query = FakeQuery(name, self.rows, self.error)
        self.queries.append(query)
        return query


def test_get_session_without_session_is_none():
    backend = SupabaseBackend(FakeClient())
    assert asyncio.run(backend.get_session()) is None


def test_get_session_maps_user():
    backend = SupabaseBackend(FakeClient(FakeAuth(session=raw_session())))
    session = asyncio.run(backend.get_session())
    assert session.user.id == "usr_1"
    assert session.user.email == "a@x.com"


def test_get_user_without_user_is_none():
    backend = SupabaseBackend(FakeClient())
    assert asyncio.run(backend.get_user()) is None


def test_get_user_maps_missing_email_to_blank():
    user = SimpleNamespace(id="usr_9", email=None)
    backend = SupabaseBackend(FakeClient(FakeAuth(user=user)))
    assert asyncio.run(backend.get_user()).email == ""


def test_auth_failures_become_auth_errors():
    error = SupabaseAuthError("Invalid login credentials", "invalid_credentials")
    backend = SupabaseBackend(FakeClient(FakeAuth(error=error)))
    with pytest.raises(AuthError) as info:
        asyncio.run(backend.sign_in("a@x.com", "wrong1"))
    assert info.value.message == "Invalid login credentials"
    assert info.value.code == "invalid_credentials"


def test_unexpected_failures_propagate_unchanged():
    backend = SupabaseBackend(FakeClient(FakeAuth(error=ConnectionError("offline"))))
    with pytest.raises(ConnectionError):
        asyncio.run(backend.sign_out())


def test_sign_in_sends_credentials():
    auth = FakeAuth(session=raw_session())
    backend = SupabaseBackend(FakeClient(auth))
    session = asyncio.run(backend.sign_in("a@x.com", "abc123"))
    assert session.user.id == "usr_1"
    assert auth.requests == [("sign_in", {"email": "a@x.com", "password": "abc123"})]


def test_sign_up_requests_confirmation_redirect():
    auth = FakeAuth()
    backend = SupabaseBackend(FakeClient(auth), redirect_to="http://127.0.0.1:8000")
    assert asyncio.run(backend.sign_up("a@x.com", "abc123")) is None
    [(_, credentials)] = auth.requests
    assert credentials["options"] == {"email_redirect_to": "http://127.0.0.1:8000"}


def test_sign_up_without_redirect_sends_no_options():
    auth = FakeAuth()
    asyncio.run(SupabaseBackend(FakeClient(auth)).sign_up("a@x.com", "abc123"))
    [(_, credentials)] = auth.requests
    assert "options" not in credentials


def test_session_change_is_relayed_with_plain_event_names():
    auth = FakeAuth()
    seen = []
    SupabaseBackend(FakeClient(auth)).on_session_change(lambda event, session: seen.append((event, session)))
    [relay] = auth.listeners

    relay(SimpleNamespace(value="SIGNED_IN"), raw_session())
    relay("SIGNED_OUT", None)

    assert seen[0][0] == "SIGNED_IN"
    assert seen[0][1].user.id == "usr_1"
    assert seen[1] == ("SIGNED_OUT", None)


def test_list_notes_orders_newest_first_and_coerces_ids():
    client = FakeClient(rows=[ROW])
    notes = asyncio.run(SupabaseBackend(client, table="journal").list_notes())
    assert [note.id for note in notes] == ["42"]
    assert client.queries[0].steps == [
        ("table", "journal"),
        ("select", "*"),
        ("order", "created_at", True),
    ]


def test_create_note_inserts_owner_and_returns_row():
    client = FakeClient(rows=[ROW])
    note = asyncio.run(SupabaseBackend(client).create_note("usr_1", "Groceries", "milk"))
    assert note.id == "42"
    assert client.queries[0].steps[1] == (
        "insert",
        {"title": "Groceries", "content": "milk", "user_id": "usr_1"},
    )


def test_update_and_delete_target_one_row():
    client = FakeClient()
    backend = SupabaseBackend(client)
    asyncio.run(backend.update_note("42", "New", ""))
    asyncio.run(backend.delete_note("42"))
    update, delete = client.queries
    assert update.steps[1:] == [("update", {"title": "New", "content": ""}), ("eq", "id", "42")]
    assert delete.steps[1:] == [("delete",), ("eq", "id", "42")]


def test_row_level_security_rejection_becomes_backend_error():
    error = PostgrestAPIError(
        {
            "message": 'new row violates row-level security policy for table "notes"',
            "code": "42501",
            "hint": None,
            "details": None,
        }
    )
    backend = SupabaseBackend(FakeClient(error=error))
    with pytest.raises(BackendError) as info:
        asyncio.run(backend.create_note("usr_2", "Title", ""))
    assert not isinstance(info.value, AuthError)
    assert info.value.code == "42501"
    assert "row-level security" in info.value.message
