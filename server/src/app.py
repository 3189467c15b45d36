"""
Server entry point — FastAPI app setup and route configuration.
Sets up the FastAPI server with CORS, the real-time observer channel,
a health endpoint, and static UI serving.
"""

from __future__ import annotations

import contextlib
import pathlib
from collections.abc import AsyncGenerator, Callable

import dotenv
import fastapi
import uvicorn
from fastapi import staticfiles
from fastapi.middleware import cors

from src import config
from src.analysis import geo
from src.pipeline import monitor as monitor_mod
from src.pipeline import scan
from src.routes import realtime
from src.utils import logger

dotenv.load_dotenv()

log = logger.create_logger("Server")


def create_app(
    settings: config.Settings | None = None,
    *,
    resolver: geo.GeoResolver | None = None,
    session_factory: Callable[[], scan.RenderingSession] | None = None,
) -> fastapi.FastAPI:
    """Build the FastAPI application.

    Args:
        settings: Runtime settings; read from the environment when omitted.
        resolver: Geolocation resolver; ip-api.com when omitted.
        session_factory: Browser session factory; Playwright when omitted.
    """
    settings = settings or config.get_settings()

    @contextlib.asynccontextmanager
    async def lifespan(app: fastapi.FastAPI) -> AsyncGenerator[None]:
        app.state.monitor = monitor_mod.build_monitor(
            settings,
            resolver=resolver,
            session_factory=session_factory,
        )
        log.section("War Room Server Started")
        log.info("Environment", {"env": settings.environment, "port": settings.port})
        try:
            yield
        finally:
            await app.state.monitor.close()
            log.info("Server stopped")

    app = fastapi.FastAPI(title="War Room Traffic Monitor", lifespan=lifespan)

    # ============================================================================
    # Middleware
    # ============================================================================

    app.add_middleware(
        cors.CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # ============================================================================
    # Routes
    # ============================================================================

    app.include_router(realtime.router)

    @app.get("/api/health")
    async def health(request: fastapi.Request) -> dict[str, object]:
        """Report the scan state and channel statistics."""
        monitor: monitor_mod.Monitor = request.app.state.monitor
        return {
            "status": "ok",
            "scanState": monitor.controller.state.value,
            "observers": monitor.broadcaster.observer_count,
            "historySize": len(monitor.history),
        }

    # ============================================================================
    # Static File Serving
    # ============================================================================

    public_path = pathlib.Path(settings.public_dir).resolve()
    if public_path.is_dir():
        log.info("Serving static files", {"path": str(public_path)})
        app.mount("/", staticfiles.StaticFiles(directory=str(public_path), html=True), name="public")

    return app


app = create_app()


# ============================================================================
# Start Server
# ============================================================================


def main() -> None:
    """Entry point for running the server."""
    settings = config.get_settings()
    log.success(f"Server listening on {settings.host}:{settings.port}")
    log.info("Open your browser", {"url": f"http://localhost:{settings.port}"})

    uvicorn.run(
        "src.app:app",
        host=settings.host,
        port=settings.port,
        reload=not settings.is_production,
    )


if __name__ == "__main__":
    main()
