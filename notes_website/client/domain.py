from enum import Enum
from typing import List, Optional


class Region(str, Enum):
    NONE = "none"
    AUTH = "auth"
    NOTES = "notes"


class CardMode(str, Enum):
    DISPLAY = "display"
    EDITING = "editing"


class ListStatus(str, Enum):
    LOADING = "loading"
    EMPTY = "empty"
    ERROR = "error"
    READY = "ready"


class MessageKind(str, Enum):
    SUCCESS = "success"
    ERROR = "error"


class Message:
    """A line of feedback shown in one of the page's message areas."""

    def __init__(self, text: str, kind: MessageKind):
        self.text = text
        self.kind = kind


class CardAction:
    """Declarative description of a button on a note card."""

    def __init__(self, name: str, label: str, style: str):
        self.name = name
        self.label = label
        self.style = style


DISPLAY_ACTIONS: List[CardAction] = [
    CardAction("edit", "Edit", "btn-secondary"),
    CardAction("delete", "Delete", "btn-danger"),
]

EDITING_ACTIONS: List[CardAction] = [
    CardAction("save", "Save", "btn-secondary"),
    CardAction("cancel", "Cancel", "btn-danger"),
]


class EditBuffer:
    """In-progress values of a card that is being edited."""

    def __init__(self, title: str, content: str):
        self.title = title
        self.content = content


class BackendError(Exception):
    """A failure reported by the backend whose message is safe to display."""

    def __init__(self, message: str, code: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.code = code


class AuthError(BackendError):
    """Custom exception for authentication errors."""
    pass


class ConfigError(Exception):
    pass


class UnknownActionError(KeyError):
    def __init__(self, action: str):
        super().__init__(action)
        self.action = action
