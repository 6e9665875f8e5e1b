"""
Purpose:
- FastAPI application factory and router mounts.
- Adds CORS for local dev browser apps.
- Owns the captioning session: one orchestrator per app, built at startup and
  closed at shutdown (lifespan), kept on app.state.
- Uvicorn will serve this on 0.0.0.0:8000 by default.
"""

from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from .core.logging import configure_logging
from .core.settings import settings
from .captions.orchestrator import CaptionOrchestrator, build_orchestrator
from .api.health import router as health_router
from .api.captions import router as captions_router

def create_app(orchestrator: Optional[CaptionOrchestrator] = None) -> FastAPI:
    configure_logging(settings.log_level)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        app.state.orchestrator = orchestrator or build_orchestrator(settings)
        try:
            yield
        finally:
            await app.state.orchestrator.close()

    app = FastAPI(title="Photo Caption API", version="0.1.0", lifespan=lifespan)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_allow_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.include_router(health_router)
    app.include_router(captions_router)
    return app


app = create_app()
