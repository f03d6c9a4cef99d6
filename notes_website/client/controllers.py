"""Session and notes controllers.

Both controllers share one backend client and one page. They validate
input, call the backend, and update the page; they never keep a copy of
backend data beyond what is currently rendered.
"""

import asyncio
import inspect
import logging
from contextlib import contextmanager
from typing import Callable, Dict, Iterator, Mapping, Optional, Set

from .backend import Backend
from .domain import BackendError, EditBuffer, MessageKind, Region, UnknownActionError
from .models import NoteDraft, Session, User
from .page import AUTH, NOTES, Page

logger = logging.getLogger(__name__)

UNEXPECTED = "An unexpected error occurred: "
DELETE_PROMPT = "Are you sure you want to delete this note?"
MIN_PASSWORD_LENGTH = 6

Confirmer = Callable[[str], bool]


@contextmanager
def reporting(page: Page, area: str, action: str, prefix: str = "") -> Iterator[None]:
    """Turn any failure of the wrapped block into a message in ``area``.

    Structured backend errors are shown verbatim (after ``prefix``), anything
    else with a generic prefix. The rest of the block is skipped.
    """
    try:
        yield
    except BackendError as e:
        logger.warning("%s failed: %s", action, e.message)
        page.show_message(area, prefix + e.message, MessageKind.ERROR)
    except Exception as e:
        logger.exception("Unexpected error during %s", action)
        page.show_message(area, UNEXPECTED + str(e), MessageKind.ERROR)


class NotesController:
    """Renders the signed-in user's notes and mediates every change to them."""

    def __init__(self, backend: Backend, page: Page):
        self.backend = backend
        self.page = page
        self.actions: Dict[str, Callable] = {
            "edit": lambda note_id, fields, confirm: self.enter_edit_mode(note_id),
            "save": lambda note_id, fields, confirm: self.save_edit(
                note_id, fields.get("title", ""), fields.get("content", "")
            ),
            "cancel": lambda note_id, fields, confirm: self.cancel_edit(note_id),
            "delete": lambda note_id, fields, confirm: self.delete_note(note_id, confirm),
        }

    async def dispatch(
        self,
        action: str,
        note_id: str,
        fields: Optional[Mapping[str, str]] = None,
        confirm: Optional[Confirmer] = None,
    ) -> None:
        handler = self.actions.get(action)
        if handler is None:
            raise UnknownActionError(action)
        result = handler(note_id, fields or {}, confirm or (lambda prompt: False))
        if inspect.isawaitable(result):
            await result

    async def refresh_list(self) -> None:
        logger.info("Loading notes...")
        notes_list = self.page.notes
        notes_list.start_loading()
        try:
            notes = await self.backend.list_notes()
        except BackendError as e:
            logger.warning("Load notes failed: %s", e.message)
            notes_list.fail(e.message)
            return
        except Exception as e:
            logger.exception("Unexpected error loading notes")
            notes_list.fail(UNEXPECTED + str(e))
            return
        logger.info("Notes loaded: %d", len(notes))
        notes_list.show(notes)

    async def _current_user(self) -> Optional[User]:
        try:
            return await self.backend.get_user()
        except BackendError as e:
            logger.warning("Could not resolve current user: %s", e.message)
            return None

    async def create_note(self, title: str, content: str) -> None:
        form = self.page.form("create_note")
        if form.busy:
            return
        form.values = {"title": title, "content": content}
        draft = NoteDraft.from_form(title, content)
        if not draft.title:
            self.page.show_message(NOTES, "Please enter a title for your note.", MessageKind.ERROR)
            return

        created = False
        with form.submitting("Creating..."), reporting(self.page, NOTES, "create note"):
            user = await self._current_user()
            if user is None:
                self.page.show_message(
                    NOTES, "You must be logged in to create notes.", MessageKind.ERROR
                )
                return
            logger.info("Creating note for user: %s", user.id)
            note = await self.backend.create_note(user.id, draft.title, draft.content)
            logger.info("Note created successfully: %s", note.id)
            self.page.show_message(NOTES, "Note created successfully!", MessageKind.SUCCESS)
            form.reset()
            created = True
        if created:
            await self.refresh_list()

    async def delete_note(self, note_id: str, confirm: Confirmer) -> None:
        if note_id in self.page.notes.pending:
            return
        if not confirm(DELETE_PROMPT):
            logger.info("Delete of note %s not confirmed", note_id)
            return
        self.page.dismiss_confirmation()
        logger.info("Deleting note: %s", note_id)

        deleted = False
        with self.page.notes.in_flight(note_id), reporting(self.page, NOTES, "delete note"):
            await self.backend.delete_note(note_id)
            self.page.show_message(NOTES, "Note deleted successfully!", MessageKind.SUCCESS)
            deleted = True
        if deleted:
            await self.refresh_list()

    def enter_edit_mode(self, note_id: str) -> None:
        card = self.page.notes.card(note_id)
        if card is None:
            logger.warning("No card for note %s", note_id)
            return
        buffers = self.page.notes.buffers
        buffers.clear()
        buffers[note_id] = EditBuffer(card.title, card.content)

    async def save_edit(self, note_id: str, title: str, content: str) -> None:
        notes_list = self.page.notes
        if note_id in notes_list.pending:
            return
        buffer = notes_list.buffers.setdefault(note_id, EditBuffer(title, content))
        buffer.title, buffer.content = title, content
        draft = NoteDraft.from_form(title, content)
        if not draft.title:
            self.page.show_message(NOTES, "Please enter a title for your note.", MessageKind.ERROR)
            return

        saved = False
        with notes_list.in_flight(note_id), reporting(self.page, NOTES, "update note"):
            await self.backend.update_note(note_id, draft.title, draft.content)
            logger.info("Note updated successfully: %s", note_id)
            self.page.show_message(NOTES, "Note updated successfully!", MessageKind.SUCCESS)
            notes_list.buffers.pop(note_id, None)
            saved = True
        if saved:
            await self.refresh_list()

    async def cancel_edit(self, note_id: str) -> None:
        self.page.notes.buffers.pop(note_id, None)
        await self.refresh_list()


class SessionController:
    """Decides which region is visible, driven by backend session events."""

    def __init__(self, backend: Backend, page: Page, notes: NotesController, signup_redirect_delay: float = 2.0):
        self.backend = backend
        self.page = page
        self.notes = notes
        self.signup_redirect_delay = signup_redirect_delay
        self._tasks: Set[asyncio.Task] = set()

    async def initialize(self) -> bool:
        try:
            session = await self.backend.get_session()
        except BackendError as e:
            logger.error("Error checking auth state: %s", e.message)
            self.page.show_message(
                AUTH, "Error checking authentication: " + e.message, MessageKind.ERROR
            )
            return False
        except Exception as e:
            logger.exception("Error in initialize")
            self.page.show_message(
                AUTH, "Error checking authentication: " + str(e), MessageKind.ERROR
            )
            return False

        if session is not None:
            logger.info("User is logged in: %s", session.user.email)
        else:
            logger.info("No active session")
        self._apply(session)
        self.backend.on_session_change(self._on_session_change)
        await self.settle()
        return True

    def _on_session_change(self, event: str, session: Optional[Session]) -> None:
        logger.info("Auth state changed: %s", event)
        self._apply(session)

    def _apply(self, session: Optional[Session]) -> None:
        if session is None:
            self.page.show_auth_region()
            return
        email = session.user.email
        if self.page.region is Region.NOTES and self.page.user_email == email:
            return
        self.page.show_notes_region(email)
        self._spawn(self.notes.refresh_list())

    def _spawn(self, coro) -> None:
        task = asyncio.get_running_loop().create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def settle(self) -> None:
        """Wait for work started by session events to finish."""
        while True:
            pending = [task for task in self._tasks if not task.done()]
            if not pending:
                return
            await asyncio.gather(*pending, return_exceptions=True)

    def show_tab(self, tab: str) -> None:
        self.page.show_tab(tab)

    async def login(self, email: str, password: str) -> None:
        form = self.page.form("login")
        if form.busy:
            return
        email = (email or "").strip()
        form.values = {"email": email}
        if not email or not password:
            self.page.show_message(
                AUTH, "Please enter your email and password.", MessageKind.ERROR
            )
            return

        logger.info("Attempting login for: %s", email)
        with form.submitting("Logging in..."), reporting(self.page, AUTH, "login"):
            await self.backend.sign_in(email, password)
            # The session listener moves to the notes region.
            logger.info("Login successful")

    async def signup(self, email: str, password: str, password_confirm: str) -> None:
        form = self.page.form("signup")
        if form.busy:
            return
        email = (email or "").strip()
        form.values = {"email": email}
        if password != password_confirm:
            self.page.show_message(AUTH, "Passwords do not match!", MessageKind.ERROR)
            return
        if len(password) < MIN_PASSWORD_LENGTH:
            self.page.show_message(
                AUTH,
                f"Password must be at least {MIN_PASSWORD_LENGTH} characters long.",
                MessageKind.ERROR,
            )
            return

        logger.info("Attempting signup for: %s", email)
        with form.submitting("Signing up..."), reporting(self.page, AUTH, "signup"):
            await self.backend.sign_up(email, password)
            logger.info("Signup successful: %s", email)
            self.page.show_message(
                AUTH, "Account created successfully! You can now login.", MessageKind.SUCCESS
            )
            form.reset()
            asyncio.get_running_loop().call_later(
                self.signup_redirect_delay, self._open_login, email
            )

    def _open_login(self, email: str) -> None:
        self.page.show_tab("login")
        self.page.form("login").values = {"email": email}

    async def logout(self) -> None:
        form = self.page.form("logout")
        if form.busy:
            return
        logger.info("Logging out...")
        with form.submitting("Logging out..."), reporting(
            self.page, NOTES, "logout", prefix="Error logging out: "
        ):
            await self.backend.sign_out()
            # The session listener moves to the auth region.
            logger.info("Logout successful")
