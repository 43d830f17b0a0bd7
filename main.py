import inspect
import logging
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Optional

from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import FileResponse
from fastapi.staticfiles import StaticFiles

from routes.realtime_ws import router as realtime_router
from routes.session_route import router as session_router
from services.openai.generation_client import GenerationClient
from services.openai.offline_client import OfflineGenerationClient
from services.realtime.session_store import SessionStore
from utils.config import OrchestratorConfig

BASE_DIR = Path(__file__).resolve().parent
PUBLIC_DIR = BASE_DIR / "public"

LOGGER = logging.getLogger(__name__)


def build_backend(config: OrchestratorConfig):
    """Return the generation backend selected by configuration."""
    if config.simulation_mode:
        LOGGER.warning("No generation endpoint configured; running in offline simulation mode")
        return OfflineGenerationClient()
    try:
        return GenerationClient.from_config(config)
    except Exception as exc:
        raise RuntimeError("Failed to initialize OpenAI Async client") from exc


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Lifespan manager to initialize:
      - configuration from the environment (and .env when present)
      - the generation backend (OpenAI-compatible or offline simulation)
      - the in-memory session store
    and attach them to `app.state`.
    """
    config: Optional[OrchestratorConfig] = getattr(app.state, "config", None)
    if config is None:
        config = OrchestratorConfig.from_env()
        app.state.config = config

    backend = getattr(app.state, "backend", None)
    if backend is None:
        backend = build_backend(config)
        app.state.backend = backend
    app.state.session_store = SessionStore(backend)

    try:
        yield
    finally:
        # Gracefully close the OpenAI client if it exposes a close/aclose method.
        client = getattr(backend, "client", None)
        if client is not None:
            aclose = getattr(client, "aclose", None) or getattr(client, "close", None)
            if aclose is not None:
                try:
                    if inspect.iscoroutinefunction(aclose):
                        await aclose()
                    else:
                        result = aclose()
                        if inspect.isawaitable(result):
                            await result
                except Exception as exc:
                    LOGGER.warning("Error while closing generation client: %s", exc)


def create_app(config: Optional[OrchestratorConfig] = None, backend=None) -> FastAPI:
    """
    Create and configure the FastAPI application instance.

    `config` and `backend` may be injected; otherwise they are built from the
    environment at startup.
    """
    app = FastAPI(lifespan=lifespan)
    if config is not None:
        app.state.config = config
    if backend is not None:
        app.state.backend = backend

    # Serve static assets from the public directory, if it exists.
    if PUBLIC_DIR.exists():
        app.mount("/public", StaticFiles(directory=PUBLIC_DIR), name="public")

    @app.get("/", include_in_schema=False)
    async def serve_index():
        """
        Serve the frontend index page from the public directory.
        """
        index_path = PUBLIC_DIR / "index.html"
        if not index_path.exists():
            raise HTTPException(status_code=404, detail="Frontend not found")
        return FileResponse(index_path)

    @app.get("/health")
    async def health(request: Request):
        """
        Report whether the generation backend is live or in offline simulation mode.
        """
        backend = getattr(request.app.state, "backend", None)
        store = getattr(request.app.state, "session_store", None)
        return {
            "ok": backend is not None,
            "simulation_mode": isinstance(backend, OfflineGenerationClient),
            "sessions": len(store) if store is not None else 0,
        }

    # Register application routers
    app.include_router(session_router)
    app.include_router(realtime_router)

    return app


app = create_app()
