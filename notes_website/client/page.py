"""In-memory page state.

The page is what the renderer draws and the only thing the controllers
mutate: the selected region, the auth tab, one message slot per area, the
forms, the note list and a pending confirmation prompt.
"""

import asyncio
from contextlib import contextmanager
from typing import Dict, Iterator, List, Optional, Set

from .domain import (
    DISPLAY_ACTIONS,
    EDITING_ACTIONS,
    CardAction,
    CardMode,
    EditBuffer,
    ListStatus,
    Message,
    MessageKind,
    Region,
)
from .models import Note

AUTH = "auth"
NOTES = "notes"


class FormState:
    """Values and submit-button state of one form."""

    def __init__(self, idle_label: str):
        self.idle_label = idle_label
        self.submit_label = idle_label
        self.busy = False
        self.values: Dict[str, str] = {}

    @contextmanager
    def submitting(self, busy_label: str) -> Iterator["FormState"]:
        """Disable the submit button for the duration of a request."""
        self.busy = True
        self.submit_label = busy_label
        try:
            yield self
        finally:
            self.busy = False
            self.submit_label = self.idle_label

    def reset(self) -> None:
        self.values = {}


class Card:
    """One rendered note. Title and content are the values captured at render time."""

    def __init__(self, note: Note):
        self.id = note.id
        self.title = note.title
        self.content = note.content or ""
        self.created_at = note.created_at


class NotesList:
    def __init__(self):
        self.status = ListStatus.LOADING
        self.error: Optional[str] = None
        self.cards: List[Card] = []
        self.buffers: Dict[str, EditBuffer] = {}
        self.pending: Set[str] = set()

    def start_loading(self) -> None:
        self.status = ListStatus.LOADING
        self.error = None
        self.cards = []
        self.buffers.clear()

    def fail(self, error: str) -> None:
        self.status = ListStatus.ERROR
        self.error = error
        self.cards = []
        self.buffers.clear()

    def show(self, notes: List[Note]) -> None:
        self.error = None
        self.cards = [Card(note) for note in notes]
        self.buffers.clear()
        self.status = ListStatus.READY if self.cards else ListStatus.EMPTY

    def card(self, note_id: str) -> Optional[Card]:
        for card in self.cards:
            if card.id == note_id:
                return card
        return None

    def mode(self, note_id: str) -> CardMode:
        return CardMode.EDITING if note_id in self.buffers else CardMode.DISPLAY

    def actions(self, note_id: str) -> List[CardAction]:
        if self.mode(note_id) is CardMode.EDITING:
            return EDITING_ACTIONS
        return DISPLAY_ACTIONS

    @contextmanager
    def in_flight(self, note_id: str) -> Iterator[None]:
        self.pending.add(note_id)
        try:
            yield
        finally:
            self.pending.discard(note_id)


class Confirmation:
    """A question the user has to accept before an action runs."""

    def __init__(self, prompt: str, action: str, note_id: str):
        self.prompt = prompt
        self.action = action
        self.note_id = note_id


class Page:
    def __init__(self, message_ttl: float = 5.0):
        self.message_ttl = message_ttl
        self.region = Region.NONE
        self.auth_tab = "login"
        self.user_email = ""
        self.messages: Dict[str, Optional[Message]] = {AUTH: None, NOTES: None}
        self.forms: Dict[str, FormState] = {
            "login": FormState("Login"),
            "signup": FormState("Sign Up"),
            "create_note": FormState("Create Note"),
            "logout": FormState("Logout"),
        }
        self.notes = NotesList()
        self.confirmation: Optional[Confirmation] = None

    def form(self, name: str) -> FormState:
        return self.forms[name]

    def show_message(self, area: str, text: str, kind: MessageKind) -> Message:
        """Show a message in an area, replacing whatever was there.

        Success messages clear themselves after ``message_ttl`` seconds when an
        event loop is running; errors stay until replaced.
        """
        message = Message(text, kind)
        self.messages[area] = message
        if kind is MessageKind.SUCCESS:
            try:
                loop = asyncio.get_running_loop()
            except RuntimeError:
                loop = None
            if loop is not None:
                loop.call_later(self.message_ttl, self._expire, area, message)
        return message

    def _expire(self, area: str, message: Message) -> None:
        if self.messages.get(area) is message:
            self.messages[area] = None

    def clear_message(self, area: str) -> None:
        self.messages[area] = None

    def show_tab(self, tab: str) -> None:
        if tab not in ("login", "signup"):
            raise ValueError(f"Unknown tab: {tab}")
        self.auth_tab = tab
        self.clear_message(AUTH)

    def show_auth_region(self) -> None:
        self.region = Region.AUTH
        self.user_email = ""
        self.confirmation = None
        self.notes = NotesList()
        self.forms["create_note"].reset()
        self.clear_message(AUTH)

    def show_notes_region(self, email: str) -> None:
        self.region = Region.NOTES
        self.user_email = email
        self.clear_message(NOTES)

    def request_confirmation(self, prompt: str, action: str, note_id: str) -> bool:
        """Record a prompt for the user and decline for now."""
        self.confirmation = Confirmation(prompt, action, note_id)
        return False

    def dismiss_confirmation(self) -> None:
        self.confirmation = None
