import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.responses import RedirectResponse
from fastapi.staticfiles import StaticFiles

from backend import CBTBackend
from config import STATIC_DIR, Settings
from screens.results import ResultsScreen
from screens.roster import RosterScreen

# --- IMPORT ROUTERS ---
from routers import bulk_import, results, students

logger = logging.getLogger(__name__)


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    yield
    # Screens die with the app: anything still pending is ignored
    app.state.results_screen.dispose()
    app.state.roster_screen.dispose()
    if app.state.owns_backend:
        app.state.backend.close()
    logger.info("Admin console stopped")


def create_app(backend: Optional[CBTBackend] = None, settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or Settings.from_env()
    configure_logging(settings.log_level)

    app = FastAPI(title="CBT Admin Console", lifespan=lifespan)

    app.state.settings = settings
    app.state.owns_backend = backend is None
    app.state.backend = backend or CBTBackend(settings)
    app.state.results_screen = ResultsScreen(app.state.backend, settings)
    app.state.roster_screen = RosterScreen(app.state.backend)

    # --- STATIC FILES ---
    app.mount("/static", StaticFiles(directory=STATIC_DIR), name="static")

    # --- REGISTER ROUTERS ---
    app.include_router(results.router)
    app.include_router(students.router)
    app.include_router(bulk_import.router)

    @app.get("/")
    def home():
        return RedirectResponse(url="/results/")

    if app.state.owns_backend:
        logger.info("Admin console ready, backend at %s", settings.api_base_url)
    else:
        logger.info("Admin console ready")
    return app


app = create_app()
