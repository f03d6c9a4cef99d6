import logging
from contextlib import asynccontextmanager
from typing import Literal, Optional

from fastapi import FastAPI, Form, HTTPException, Request
from fastapi.responses import HTMLResponse, RedirectResponse

from .backend import Backend, SupabaseBackend
from .config import Settings, load_settings
from .controllers import NotesController, SessionController
from .domain import ConfigError, MessageKind, UnknownActionError
from .page import AUTH, Page
from .render import render_page
from .services import MemoryBackend
from .utils import time_now

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


async def _open_backend(settings: Settings) -> Backend:
    if settings.backend == "memory":
        logger.info("Using the in-memory backend")
        return MemoryBackend()
    return await SupabaseBackend.connect(settings)


async def start(app: FastAPI, settings: Optional[Settings] = None, backend: Optional[Backend] = None) -> None:
    """Create the page and, when configuration allows, the controllers."""
    app.state.page = Page()
    app.state.session = None
    app.state.notes = None
    logger.info("App initializing...")

    try:
        settings = (settings or load_settings()).check()
    except ConfigError as e:
        logger.error("Configuration error: %s", e)
        app.state.page.show_message(AUTH, f"Error: {e}", MessageKind.ERROR)
        return

    page = app.state.page = Page(settings.message_ttl)
    if backend is None:
        try:
            backend = await _open_backend(settings)
        except Exception as e:
            logger.exception("Failed to initialize the backend client")
            page.show_message(AUTH, f"Failed to initialize Supabase: {e}", MessageKind.ERROR)
            return

    notes = NotesController(backend, page)
    session = SessionController(backend, page, notes, settings.signup_redirect_delay)
    if await session.initialize():
        app.state.notes = notes
        app.state.session = session


def create_app(settings: Optional[Settings] = None, backend: Optional[Backend] = None) -> FastAPI:
    """Build the notes website.

    Without arguments the settings come from the environment and the backend
    client is created from them at startup. Both can be injected.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        await start(app, settings, backend)
        yield
        logger.info("Notes website shutting down...")

    app = FastAPI(
        title="Notes",
        description="A minimal note-taking site backed by a hosted auth and database service",
        version="1.0.0",
        lifespan=lifespan,
    )

    def back() -> RedirectResponse:
        return RedirectResponse("/", status_code=303)

    @app.get("/", response_class=HTMLResponse)
    async def read_root(request: Request):
        return HTMLResponse(render_page(request.app.state.page))

    @app.post("/tabs/{tab}")
    async def show_tab(request: Request, tab: Literal["login", "signup"]):
        session = request.app.state.session
        if session is not None:
            session.show_tab(tab)
        return back()

    @app.post("/login")
    async def login(request: Request, email: str = Form(""), password: str = Form("")):
        session = request.app.state.session
        if session is not None:
            await session.login(email, password)
            await session.settle()
        return back()

    @app.post("/signup")
    async def signup(
        request: Request,
        email: str = Form(""),
        password: str = Form(""),
        password_confirm: str = Form(""),
    ):
        session = request.app.state.session
        if session is not None:
            await session.signup(email, password, password_confirm)
            await session.settle()
        return back()

    @app.post("/logout")
    async def logout(request: Request):
        session = request.app.state.session
        if session is not None:
            await session.logout()
            await session.settle()
        return back()

    @app.post("/notes")
    async def create_note(request: Request, title: str = Form(""), content: str = Form("")):
        notes = request.app.state.notes
        if notes is not None:
            await notes.create_note(title, content)
        return back()

    @app.post("/notes/{note_id}/{action}")
    async def note_action(
        request: Request,
        note_id: str,
        action: str,
        title: str = Form(""),
        content: str = Form(""),
        confirmed: str = Form(""),
    ):
        notes = request.app.state.notes
        if notes is None:
            return back()
        page = request.app.state.page

        def confirm(prompt: str) -> bool:
            if confirmed == "yes":
                return True
            return page.request_confirmation(prompt, action, note_id)

        try:
            await notes.dispatch(action, note_id, {"title": title, "content": content}, confirm)
        except UnknownActionError:
            raise HTTPException(status_code=404, detail=f"Unknown action: {action}")
        return back()

    @app.post("/confirmation/dismiss")
    async def dismiss_confirmation(request: Request):
        request.app.state.page.dismiss_confirmation()
        return back()

    @app.get("/health")
    async def health_check():
        return {"status": "healthy", "timestamp": time_now().isoformat()}

    return app


app = create_app()


def run() -> None:
    """Serve the site with uvicorn using the host and port from the environment."""
    import uvicorn

    try:
        settings = load_settings()
    except ConfigError:
        # The page reports the problem; serve it on the default address.
        settings = Settings()
    logging.basicConfig(level=settings.log_level, format=LOG_FORMAT)
    uvicorn.run(app, host=settings.host, port=settings.port)


if __name__ == "__main__":
    run()
