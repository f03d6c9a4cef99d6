"""HTML rendering of the page state.

Everything that comes from the user or the backend goes through ``escape``.
"""

from typing import List, Optional

from .domain import CardMode, ListStatus, Message, Region
from .page import AUTH, NOTES, Card, FormState, NotesList, Page
from .utils import escape, local_time

STYLE = """
body { font-family: sans-serif; max-width: 720px; margin: 2rem auto; }
.tabs button.active { font-weight: bold; }
.error { color: #b00020; }
.success { color: #1b7f3b; }
.note-card { border: 1px solid #ddd; border-radius: 6px; padding: 1rem; margin: 1rem 0; }
.loading, .empty-state { color: #666; }
.btn-danger { color: #b00020; }
dialog { display: block; border: 1px solid #b00020; }
"""


def _message(message: Optional[Message]) -> str:
    if message is None:
        return ""
    return f'<div class="{message.kind.value}">{escape(message.text)}</div>'


def _submit(form: FormState) -> str:
    disabled = " disabled" if form.busy else ""
    return f'<button type="submit"{disabled}>{escape(form.submit_label)}</button>'


def _auth_section(page: Page) -> str:
    login, signup = page.form("login"), page.form("signup")
    on_login = page.auth_tab == "login"
    login_style = "" if on_login else ' style="display:none"'
    signup_style = ' style="display:none"' if on_login else ""
    return f"""
<section id="authSection" class="{'active' if page.region is Region.AUTH else ''}">
  <div class="tabs">
    <form method="post" action="/tabs/login" style="display:inline"><button class="{'active' if on_login else ''}">Login</button></form>
    <form method="post" action="/tabs/signup" style="display:inline"><button class="{'' if on_login else 'active'}">Sign Up</button></form>
  </div>
  <div id="authMessage">{_message(page.messages[AUTH])}</div>
  <form id="loginForm" method="post" action="/login"{login_style}>
    <input type="email" name="email" placeholder="Email" required value="{escape(login.values.get('email', ''))}">
    <input type="password" name="password" placeholder="Password" required>
    {_submit(login)}
  </form>
  <form id="signupForm" method="post" action="/signup"{signup_style}>
    <input type="email" name="email" placeholder="Email" required value="{escape(signup.values.get('email', ''))}">
    <input type="password" name="password" placeholder="Password" required>
    <input type="password" name="password_confirm" placeholder="Confirm password" required>
    {_submit(signup)}
  </form>
</section>"""


def _actions(notes_list: NotesList, card: Card) -> str:
    disabled = " disabled" if card.id in notes_list.pending else ""
    buttons = []
    for action in notes_list.actions(card.id):
        buttons.append(
            f'<button class="{action.style}" type="submit" '
            f'formaction="/notes/{escape(card.id)}/{action.name}"{disabled}>'
            f"{escape(action.label)}</button>"
        )
    return "\n".join(buttons)


def _card(notes_list: NotesList, card: Card) -> str:
    if notes_list.mode(card.id) is CardMode.EDITING:
        buffer = notes_list.buffers[card.id]
        return f"""
<div class="note-card editing" data-note-id="{escape(card.id)}">
  <form method="post">
    <input type="text" name="title" value="{escape(buffer.title)}">
    <textarea name="content">{escape(buffer.content)}</textarea>
    {_actions(notes_list, card)}
  </form>
</div>"""
    return f"""
<div class="note-card" data-note-id="{escape(card.id)}">
  <h3>{escape(card.title)}</h3>
  <p>{escape(card.content or 'No content')}</p>
  <small>Created: {escape(local_time(card.created_at))}</small>
  <form method="post">
    {_actions(notes_list, card)}
  </form>
</div>"""


def render_notes_list(notes_list: NotesList) -> str:
    if notes_list.status is ListStatus.LOADING:
        return '<div class="loading">Loading notes...</div>'
    if notes_list.status is ListStatus.ERROR:
        return f'<div class="error">{escape(notes_list.error)}</div>'
    if notes_list.status is ListStatus.EMPTY:
        return '<div class="empty-state"><p>No notes yet. Create your first note above!</p></div>'
    return "".join(_card(notes_list, card) for card in notes_list.cards)


def _confirmation(page: Page) -> str:
    pending = page.confirmation
    if pending is None:
        return ""
    return f"""
<dialog open>
  <p>{escape(pending.prompt)}</p>
  <form method="post" action="/notes/{escape(pending.note_id)}/{pending.action}" style="display:inline">
    <input type="hidden" name="confirmed" value="yes">
    <button class="btn-danger" type="submit">OK</button>
  </form>
  <form method="post" action="/confirmation/dismiss" style="display:inline">
    <button type="submit">Cancel</button>
  </form>
</dialog>"""


def _notes_section(page: Page) -> str:
    create = page.form("create_note")
    return f"""
<section id="notesSection" class="{'active' if page.region is Region.NOTES else ''}">
  <header>
    <span id="userEmail">{escape(page.user_email)}</span>
    <form method="post" action="/logout" style="display:inline">{_submit(page.form('logout'))}</form>
  </header>
  <div id="notesMessage">{_message(page.messages[NOTES])}</div>
  {_confirmation(page)}
  <form id="createNoteForm" method="post" action="/notes">
    <input type="text" name="title" placeholder="Title" value="{escape(create.values.get('title', ''))}">
    <textarea name="content" placeholder="Content">{escape(create.values.get('content', ''))}</textarea>
    {_submit(create)}
  </form>
  <div id="notesList">{render_notes_list(page.notes)}</div>
</section>"""


def render_page(page: Page) -> str:
    parts: List[str] = [
        "<!DOCTYPE html>",
        '<html lang="en"><head><meta charset="utf-8"><title>Notes</title>',
        f"<style>{STYLE}</style></head><body>",
        "<h1>Notes</h1>",
    ]
    if page.region is Region.NONE:
        # Nothing is selectable until the session check succeeds.
        parts.append(f'<div id="authMessage">{_message(page.messages[AUTH])}</div>')
    elif page.region is Region.AUTH:
        parts.append(_auth_section(page))
    else:
        parts.append(_notes_section(page))
    parts.append("</body></html>")
    return "\n".join(parts)
