"""Backend collaborator contract and its Supabase implementation.

The controllers only talk to a ``Backend``. ``SupabaseBackend`` adapts the
async Supabase client to it and turns the client's structured failures into
``BackendError`` so their messages can be shown verbatim. Anything else
(unreachable host, timeouts) propagates unchanged.
"""

import logging
from contextlib import contextmanager
from typing import Callable, List, Optional, Protocol

from supabase import AsyncClient, AuthError as SupabaseAuthError, PostgrestAPIError, acreate_client

from .config import Settings
from .domain import AuthError, BackendError
from .models import Note, Session, User

logger = logging.getLogger(__name__)

SessionListener = Callable[[str, Optional[Session]], None]


class Backend(Protocol):
    async def get_session(self) -> Optional[Session]: ...

    def on_session_change(self, callback: SessionListener) -> None: ...

    async def sign_up(self, email: str, password: str) -> Optional[Session]: ...

    async def sign_in(self, email: str, password: str) -> Session: ...

    async def sign_out(self) -> None: ...

    async def get_user(self) -> Optional[User]: ...

    async def list_notes(self) -> List[Note]: ...

    async def create_note(self, owner_id: str, title: str, content: str) -> Note: ...

    async def update_note(self, note_id: str, title: str, content: str) -> None: ...

    async def delete_note(self, note_id: str) -> None: ...


def _session(raw) -> Optional[Session]:
    if raw is None or raw.user is None:
        return None
    return Session(user=_user(raw.user))


def _user(raw) -> User:
    return User(id=str(raw.id), email=raw.email or "")


@contextmanager
def _structured_errors():
    try:
        yield
    except SupabaseAuthError as e:
        raise AuthError(e.message or str(e), getattr(e, "code", None)) from e
    except PostgrestAPIError as e:
        raise BackendError(e.message or str(e), e.code) from e


class SupabaseBackend:
    """Backend backed by Supabase auth and a row-level-secured notes table."""

    def __init__(self, client: AsyncClient, table: str = "notes", redirect_to: Optional[str] = None):
        self.client = client
        self.table = table
        self.redirect_to = redirect_to

    @classmethod
    async def connect(cls, settings: Settings) -> "SupabaseBackend":
        client = await acreate_client(settings.supabase_url, settings.supabase_anon_key)
        logger.info("Supabase client initialized for %s", settings.supabase_url)
        return cls(client, settings.notes_table, settings.origin)

    async def get_session(self) -> Optional[Session]:
        with _structured_errors():
            return _session(await self.client.auth.get_session())

    def on_session_change(self, callback: SessionListener) -> None:
        def relay(event, raw):
            callback(str(getattr(event, "value", event)), _session(raw))

        self.client.auth.on_auth_state_change(relay)

    async def sign_up(self, email: str, password: str) -> Optional[Session]:
        credentials = {"email": email, "password": password}
        if self.redirect_to:
            credentials["options"] = {"email_redirect_to": self.redirect_to}
        with _structured_errors():
            response = await self.client.auth.sign_up(credentials)
        return _session(response.session)

    async def sign_in(self, email: str, password: str) -> Session:
        with _structured_errors():
            response = await self.client.auth.sign_in_with_password(
                {"email": email, "password": password}
            )
        return _session(response.session)

    async def sign_out(self) -> None:
        with _structured_errors():
            await self.client.auth.sign_out()

    async def get_user(self) -> Optional[User]:
        with _structured_errors():
            response = await self.client.auth.get_user()
        if response is None or response.user is None:
            return None
        return _user(response.user)

    async def list_notes(self) -> List[Note]:
        with _structured_errors():
            response = await (
                self.client.table(self.table)
                .select("*")
                .order("created_at", desc=True)
                .execute()
            )
        return [Note.model_validate(row) for row in response.data]

    async def create_note(self, owner_id: str, title: str, content: str) -> Note:
        with _structured_errors():
            response = await (
                self.client.table(self.table)
                .insert({"title": title, "content": content, "user_id": owner_id})
                .execute()
            )
        return Note.model_validate(response.data[0])

    async def update_note(self, note_id: str, title: str, content: str) -> None:
        with _structured_errors():
            await (
                self.client.table(self.table)
                .update({"title": title, "content": content})
                .eq("id", note_id)
                .execute()
            )

    async def delete_note(self, note_id: str) -> None:
        with _structured_errors():
            await self.client.table(self.table).delete().eq("id", note_id).execute()
