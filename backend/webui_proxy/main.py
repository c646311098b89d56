# ------------------------------------------------------------
# Module: webui_proxy/main.py
# Purpose: FastAPI application factory for the web UI proxy.
# ------------------------------------------------------------

"""Application factory.

`create_app` wires settings, the single-flight session and the optional
surface onto `app.state`, then mounts the routers. Tests call it with a fake
surface and `LAUNCH_SURFACE=False`; `uvicorn webui_proxy.main:app` uses the
module-level `app`.
"""

from __future__ import annotations

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from webui_proxy.api.routes import debug_router, router, v1_router
from webui_proxy.core.config import Settings
from webui_proxy.core.config import settings as _settings
from webui_proxy.core.lifespan import lifespan
from webui_proxy.core.logging import configure_logging
from webui_proxy.session.controller import Session
from webui_proxy.surface.protocols import Surface


def create_app(
    settings: Settings | None = None,
    surface: Surface | None = None,
    session: Session | None = None,
) -> FastAPI:
    settings = settings or _settings
    configure_logging(settings)

    app = FastAPI(title="webui-proxy", lifespan=lifespan)
    app.state.settings = settings
    app.state.surface = surface
    app.state.session = session or Session(settings.watchdog_ms)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=False,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(router)
    app.include_router(v1_router, prefix="/v1")
    if settings.EXPOSE_INTERNALS:
        app.include_router(debug_router, prefix="/debug", tags=["debug"])
    return app


app = create_app()
