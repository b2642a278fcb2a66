from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from functools import partial
from pathlib import Path

from fastapi import Depends, FastAPI
from fastapi.routing import APIRouter
from loguru import logger
from sse_starlette.sse import AppStatus

from vibeconsole.sandbox.db.engine import create_engine, create_schema, create_session_factory
from vibeconsole.sandbox.deps import require_auth
from vibeconsole.sandbox.locks import WorkspaceLocks
from vibeconsole.sandbox.log import setup_logging
from vibeconsole.sandbox.managers.lifecycle import install_dependencies
from vibeconsole.sandbox.settings import get_settings
from vibeconsole.sandbox.supervisor import DevServerSupervisor


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncIterator[None]:
    # -- Startup ---------------------------------------------------------------
    settings = get_settings()
    setup_logging(settings.log_level)

    if not settings.auth_token:
        logger.warning("No VIBE_AUTH_TOKEN set -- API is open to anyone who can reach it")

    logger.info("Sandbox orchestrator starting (host={}, port={})", settings.host, settings.port)
    logger.info("Workspace root: {}", settings.workspace_path.resolve())
    settings.workspace_path.mkdir(parents=True, exist_ok=True)

    # -- Database --------------------------------------------------------------
    database_url = settings.resolve_database_url()
    engine = create_engine(database_url)
    _app.state.db_engine = engine
    _app.state.db_session_factory = create_session_factory(engine)
    if engine.dialect.name == "sqlite":
        Path(settings.data_root).mkdir(parents=True, exist_ok=True)
        await create_schema(engine)
        logger.info("SQLite registry: {}", engine.url.database)
    else:
        logger.info("Registry database: {} (run `vibeconsole db upgrade` to migrate)", engine.url.render_as_string())

    # -- Dev server + workspace locks --------------------------------------------
    _app.state.supervisor = DevServerSupervisor(
        settings,
        installer=partial(install_dependencies, timeout=settings.install_timeout),
    )
    _app.state.workspace_locks = WorkspaceLocks()

    # Let SSE log streams finish on their own; they are closed explicitly below.
    AppStatus.disable_automatic_graceful_drain()

    yield

    # -- Shutdown --------------------------------------------------------------
    logger.info("Sandbox orchestrator shutting down")

    AppStatus.should_exit = True

    # Never leave an orphaned dev server behind.
    await _app.state.supervisor.shutdown()

    await engine.dispose()
    logger.info("Registry database: disposed")


app = FastAPI(title="Vibe Console Sandbox Orchestrator", lifespan=lifespan)

# ---------------------------------------------------------------------------
# API router -- all backend endpoints live under /api
# ---------------------------------------------------------------------------
api = APIRouter(prefix="/api")


@api.get("/health")
async def health() -> dict[str, str]:
    return {"status": "ok"}


from vibeconsole.sandbox.routers.agent import router as agent_router  # noqa: E402
from vibeconsole.sandbox.routers.dev_server import router as dev_server_router  # noqa: E402
from vibeconsole.sandbox.routers.env import router as env_router  # noqa: E402
from vibeconsole.sandbox.routers.hosting import router as hosting_router  # noqa: E402
from vibeconsole.sandbox.routers.publish import router as publish_router  # noqa: E402
from vibeconsole.sandbox.routers.repositories import router as repositories_router  # noqa: E402
from vibeconsole.sandbox.routers.workspace import router as workspace_router  # noqa: E402

_protected = [Depends(require_auth)]
api.include_router(repositories_router, dependencies=_protected)
api.include_router(dev_server_router, dependencies=_protected)
api.include_router(workspace_router, dependencies=_protected)
api.include_router(env_router, dependencies=_protected)
api.include_router(agent_router, dependencies=_protected)
api.include_router(publish_router, dependencies=_protected)
api.include_router(hosting_router, dependencies=_protected)

app.include_router(api)
