"""In-memory backend used for the local demo mode and the test suite.

It keeps the same contract as the hosted backend: accounts and a single
active session, session-change notifications pushed to listeners, and a notes
table where every query is scoped to the signed-in owner the way row-level
security scopes it.
"""

import itertools
import logging
from typing import Dict, List, Optional, Tuple

from .backend import SessionListener
from .domain import AuthError, BackendError
from .models import Note, Session, User
from .utils import time_now

logger = logging.getLogger(__name__)


class AuthService:
    """Handles user registration, login, and the active session."""

    def __init__(self, auto_confirm: bool = True):
        self.users: Dict[str, Dict[str, str]] = {}
        self.session: Optional[Session] = None
        self.auto_confirm = auto_confirm
        self._ids = itertools.count(1)

    def add_user(self, email: str, password: str) -> User:
        if not email:
            raise AuthError("Anonymous sign-ins are disabled", "validation_failed")
        if email in self.users:
            raise AuthError("User already registered", "user_already_exists")
        if len(password) < 6:
            raise AuthError("Password should be at least 6 characters.", "weak_password")
        uid = f"usr_{next(self._ids)}"
        self.users[email] = {"id": uid, "password": password}
        return User(id=uid, email=email)

    def login(self, email: str, password: str) -> Session:
        user = self.users.get(email)
        if not user or user["password"] != password:
            raise AuthError("Invalid login credentials", "invalid_credentials")
        self.session = Session(user=User(id=user["id"], email=email))
        return self.session

    def logout(self) -> None:
        self.session = None

    def validate(self) -> User:
        if self.session is None:
            raise AuthError("Auth session missing!", "session_not_found")
        return self.session.user


class Storage:
    """Stores notes in memory, keyed by note id."""

    def __init__(self):
        self.notes: Dict[str, Note] = {}
        self._ids = itertools.count(1)

    def add_note(self, owner_id: str, title: str, content: str) -> Note:
        note = Note(
            id=str(next(self._ids)),
            title=title,
            content=content,
            user_id=owner_id,
            created_at=time_now(),
        )
        self.notes[note.id] = note
        return note

    def list_notes(self, owner_id: str) -> List[Note]:
        owned = [n for n in self.notes.values() if n.user_id == owner_id]
        # Ids break ties between notes created within the same second.
        return sorted(owned, key=lambda n: (n.created_at, int(n.id)), reverse=True)

    def update_note(self, owner_id: str, note_id: str, title: str, content: str) -> int:
        note = self.notes.get(note_id)
        if note is None or note.user_id != owner_id:
            return 0
        self.notes[note_id] = note.model_copy(update={"title": title, "content": content})
        return 1

    def delete_note(self, owner_id: str, note_id: str) -> int:
        note = self.notes.get(note_id)
        if note is None or note.user_id != owner_id:
            return 0
        del self.notes[note_id]
        return 1


class MemoryBackend:
    """Backend kept entirely in process memory.

    Every request is appended to ``calls`` as ``(operation, argument)`` so
    callers can see exactly what reached the backend.
    """

    def __init__(self, auth: Optional[AuthService] = None, store: Optional[Storage] = None):
        self.auth = auth or AuthService()
        self.store = store or Storage()
        self.listeners: List[SessionListener] = []
        self.calls: List[Tuple[str, object]] = []

    def _notify(self, event: str) -> None:
        logger.debug("Session event %s", event)
        for listener in list(self.listeners):
            listener(event, self.auth.session)

    def _owner(self) -> str:
        user = self.auth.validate()
        return user.id

    def expire_session(self) -> None:
        """Drop the active session the way a token expiry or revocation would."""
        self.auth.logout()
        self._notify("SIGNED_OUT")

    async def get_session(self) -> Optional[Session]:
        self.calls.append(("get_session", None))
        return self.auth.session

    def on_session_change(self, callback: SessionListener) -> None:
        self.listeners.append(callback)

    async def sign_up(self, email: str, password: str) -> Optional[Session]:
        self.calls.append(("sign_up", email))
        self.auth.add_user(email, password)
        if not self.auth.auto_confirm:
            return None
        session = self.auth.login(email, password)
        self._notify("SIGNED_IN")
        return session

    async def sign_in(self, email: str, password: str) -> Session:
        self.calls.append(("sign_in", email))
        session = self.auth.login(email, password)
        self._notify("SIGNED_IN")
        return session

    async def sign_out(self) -> None:
        self.calls.append(("sign_out", None))
        self.auth.logout()
        self._notify("SIGNED_OUT")

    async def get_user(self) -> Optional[User]:
        self.calls.append(("get_user", None))
        if self.auth.session is None:
            return None
        return self.auth.session.user

    async def list_notes(self) -> List[Note]:
        self.calls.append(("list_notes", None))
        if self.auth.session is None:
            return []
        return self.store.list_notes(self._owner())

    async def create_note(self, owner_id: str, title: str, content: str) -> Note:
        self.calls.append(("create_note", title))
        if self.auth.session is None or owner_id != self._owner():
            raise BackendError(
                'new row violates row-level security policy for table "notes"', "42501"
            )
        return self.store.add_note(owner_id, title, content)

    async def update_note(self, note_id: str, title: str, content: str) -> None:
        self.calls.append(("update_note", note_id))
        if self.auth.session is not None:
            self.store.update_note(self._owner(), note_id, title, content)

    async def delete_note(self, note_id: str) -> None:
        self.calls.append(("delete_note", note_id))
        if self.auth.session is not None:
            self.store.delete_note(self._owner(), note_id)
