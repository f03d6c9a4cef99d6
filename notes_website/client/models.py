from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class User(BaseModel):
    id: str
    email: str = ""


class Session(BaseModel):
    """The authenticated identity bound to the page."""

    user: User


class Note(BaseModel):
    """One row of the notes table as returned by the backend."""

    model_config = ConfigDict(coerce_numbers_to_str=True, extra="ignore")

    id: str
    title: str
    content: Optional[str] = None
    user_id: str
    created_at: datetime


class NoteDraft(BaseModel):
    """Values submitted from the create or edit form, already trimmed."""

    title: str = Field(..., description="Required note title.")
    content: str = Field("", description="Optional note body.")

    @classmethod
    def from_form(cls, title: str, content: str) -> "NoteDraft":
        return cls(title=(title or "").strip(), content=(content or "").strip())
