import pytest

from notes_website.client.controllers import NotesController, SessionController
from notes_website.client.page import Page
from notes_website.client.services import MemoryBackend

EMAIL = "a@x.com"
PASSWORD = "abc123"


class Workspace:
    """A page wired to both controllers over one in-memory backend."""

    def __init__(self, backend: MemoryBackend, message_ttl: float = 5.0):
        self.backend = backend
        self.page = Page(message_ttl)
        self.notes = NotesController(backend, self.page)
        self.session = SessionController(backend, self.page, self.notes, signup_redirect_delay=0)

    def calls(self, operation: str) -> list:
        return [arg for op, arg in self.backend.calls if op == operation]

    def titles(self) -> list:
        return [card.title for card in self.page.notes.cards]


def sign_in(backend: MemoryBackend, email: str = EMAIL, password: str = PASSWORD):
    if email not in backend.auth.users:
        backend.auth.add_user(email, password)
    return backend.auth.login(email, password)


@pytest.fixture
def backend():
    return MemoryBackend()


@pytest.fixture
def workspace(backend):
    return Workspace(backend)


@pytest.fixture
def signed_in(backend):
    """A backend with an active session and two notes, the second one newer."""
    session = sign_in(backend)
    backend.store.add_note(session.user.id, "First", "one")
    backend.store.add_note(session.user.id, "Second", "")
    return backend
