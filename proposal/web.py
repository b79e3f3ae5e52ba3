import asyncio
import logging
import uuid
from collections import OrderedDict
from collections.abc import Callable
from pathlib import Path

from fastapi import FastAPI, Form, Request
from fastapi.responses import HTMLResponse, JSONResponse, RedirectResponse, Response
from fastapi.staticfiles import StaticFiles

from proposal.config import (
    ProposalPolicy,
    load_policy,
    max_sessions_from_env,
    parse_query,
    store_path_from_env,
)
from proposal.effects import EffectOutbox
from proposal.scheduler import AsyncioScheduler, Scheduler
from proposal.state_models import ProposalConfig, Viewport
from proposal.storage_gateway import (
    InMemoryStore,
    JsonFileStore,
    KeyValueStore,
    NamespacedStore,
    ProposalStorageGateway,
)
from proposal.widget import ProposalWidget

logger = logging.getLogger(__name__)

STATIC_DIR = Path(__file__).resolve().parent / "static"
VISITOR_COOKIE = "proposal_visitor"


class RedirectOpener:
    """Link opener for HTTP: the share route answers with a redirect to the last opened URL."""

    def __init__(self) -> None:
        self.last_url: str | None = None

    def open(self, url: str) -> None:
        self.last_url = url


class VisitorSession:
    def __init__(self, config: ProposalConfig, widget: ProposalWidget, outbox: EffectOutbox, opener: RedirectOpener):
        self.config = config
        self.widget = widget
        self.outbox = outbox
        self.opener = opener
        self.lock = asyncio.Lock()


class VisitorRegistry:
    """
    One widget per visitor cookie, kept in a bounded LRU map. Each visitor's keys
    live in their own namespace of the shared store, the way a browser scopes
    storage per origin; an evicted visitor is simply reloaded from the store.
    Store I/O runs in a worker thread (asyncio.to_thread) so the event loop never blocks.
    """

    def __init__(
        self,
        store: KeyValueStore,
        policy: ProposalPolicy,
        scheduler_factory: Callable[[], Scheduler] = AsyncioScheduler,
        max_sessions: int = 1000,
    ):
        self.store = store
        self.policy = policy
        self.scheduler_factory = scheduler_factory
        self.max_sessions = max_sessions
        self.sessions: OrderedDict[str, VisitorSession] = OrderedDict()

    def storage_for(self, visitor_id: str) -> ProposalStorageGateway:
        return ProposalStorageGateway(NamespacedStore(self.store, visitor_id))

    def get(self, visitor_id: str) -> VisitorSession | None:
        session = self.sessions.get(visitor_id)
        if session is not None:
            self.sessions.move_to_end(visitor_id)
        return session

    def _load(self, visitor_id: str, config: ProposalConfig, scheduler: Scheduler) -> VisitorSession:
        outbox = EffectOutbox()
        opener = RedirectOpener()
        widget = ProposalWidget(
            config,
            self.storage_for(visitor_id),
            audio=outbox,
            confetti=outbox,
            opener=opener,
            scheduler=scheduler,
            policy=self.policy,
        )
        return VisitorSession(config, widget, outbox, opener)

    def _discard(self, visitor_id: str) -> None:
        session = self.sessions.pop(visitor_id, None)
        if session is not None:
            session.widget.close()

    async def session(self, visitor_id: str, config: ProposalConfig) -> VisitorSession:
        """Returns the visitor's widget, loading a fresh one from the store when absent or reconfigured."""
        current = self.get(visitor_id)
        if current is not None and current.config == config:
            return current

        scheduler = self.scheduler_factory()
        session = await asyncio.to_thread(self._load, visitor_id, config, scheduler)
        self._discard(visitor_id)
        self.sessions[visitor_id] = session
        while len(self.sessions) > self.max_sessions:
            oldest = next(iter(self.sessions))
            logger.debug("Sessao %s expulsa do LRU", oldest)
            self._discard(oldest)
        return session

    async def reset(self, visitor_id: str) -> None:
        self._discard(visitor_id)
        await asyncio.to_thread(self.storage_for(visitor_id).wipe)
        logger.info("Estado do visitante %s apagado via reset", visitor_id)


def _visitor_id(request: Request) -> tuple[str, bool]:
    visitor_id = request.cookies.get(VISITOR_COOKIE)
    if visitor_id:
        return visitor_id, False
    return uuid.uuid4().hex, True


def _with_cookie(response: Response, visitor_id: str, is_new: bool) -> Response:
    if is_new:
        response.set_cookie(VISITOR_COOKIE, visitor_id, httponly=True, samesite="lax")
    return response


def _back_to_page(request: Request) -> RedirectResponse:
    query = request.url.query
    return RedirectResponse(url=f"/?{query}" if query else "/", status_code=303)


def _viewport(width: int | None, height: int | None) -> Viewport | None:
    """Dimensões ausentes ou inválidas são ignoradas; o widget mantém o último viewport."""
    if width is None or height is None or width <= 0 or height <= 0:
        return None
    return Viewport(width=width, height=height)


def default_store() -> KeyValueStore:
    path = store_path_from_env()
    if path is None:
        logger.warning("PROPOSAL_STORE_PATH nao definido. Usando store em memoria.")
        return InMemoryStore()
    return JsonFileStore(path)


def create_app(
    store: KeyValueStore | None = None,
    policy: ProposalPolicy | None = None,
    scheduler_factory: Callable[[], Scheduler] = AsyncioScheduler,
    max_sessions: int | None = None,
) -> FastAPI:
    """Builds the app; store, policy, scheduler and session bound are injectable for tests."""
    registry = VisitorRegistry(
        store if store is not None else default_store(),
        policy or load_policy(),
        scheduler_factory,
        max_sessions or max_sessions_from_env(),
    )

    app = FastAPI(title="Valentine Proposal")
    app.state.registry = registry
    app.mount("/static", StaticFiles(directory=STATIC_DIR), name="static")

    async def _session(request: Request) -> tuple[VisitorSession, str, bool]:
        visitor_id, is_new = _visitor_id(request)
        config = parse_query(request.query_params, registry.policy)
        return await registry.session(visitor_id, config), visitor_id, is_new

    async def _run(session: VisitorSession, action: Callable, *args):
        async with session.lock:
            return await asyncio.to_thread(action, *args)

    @app.get("/", response_class=HTMLResponse)
    async def proposal_page(request: Request):
        visitor_id, is_new = _visitor_id(request)
        config = parse_query(request.query_params, registry.policy)
        if config.reset:
            await registry.reset(visitor_id)
            return _with_cookie(RedirectResponse(url=request.url.path, status_code=303), visitor_id, is_new)

        session = await registry.session(visitor_id, config)
        # Cada GET entrega um documento novo, com um <audio> novo
        session.widget.mount()
        html = session.widget.render(query=request.url.query)
        return _with_cookie(HTMLResponse(html), visitor_id, is_new)

    @app.post("/refuse")
    async def refuse(request: Request, width: int | None = Form(None), height: int | None = Form(None)):
        session, visitor_id, is_new = await _session(request)
        await _run(session, session.widget.refuse, _viewport(width, height))
        return _with_cookie(_back_to_page(request), visitor_id, is_new)

    @app.post("/accept")
    async def accept(request: Request):
        session, visitor_id, is_new = await _session(request)
        await _run(session, session.widget.accept)
        return _with_cookie(_back_to_page(request), visitor_id, is_new)

    @app.post("/music")
    async def toggle_music(request: Request):
        session, visitor_id, is_new = await _session(request)
        await _run(session, session.widget.toggle_music)
        return _with_cookie(_back_to_page(request), visitor_id, is_new)

    @app.post("/interaction")
    async def interaction(request: Request):
        visitor_id, is_new = _visitor_id(request)
        session = registry.get(visitor_id)
        if session is None:
            session = await registry.session(visitor_id, parse_query(request.query_params, registry.policy))
        started = session.widget.user_interaction()
        return _with_cookie(JSONResponse({"triggered": started}), visitor_id, is_new)

    @app.post("/share")
    async def share(request: Request):
        session, visitor_id, is_new = await _session(request)
        url = session.widget.share()
        return _with_cookie(RedirectResponse(url=url, status_code=303), visitor_id, is_new)

    @app.get("/effects")
    async def effects(request: Request):
        visitor_id, _ = _visitor_id(request)
        session = registry.get(visitor_id)
        if session is None:
            return {"audio": [], "bursts": []}
        return session.outbox.drain()

    @app.get("/health")
    async def health_check():
        """Health check endpoint for monitoring."""
        return {"status": "ok"}

    return app
