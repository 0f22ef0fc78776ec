from contextlib import asynccontextmanager

import httpx
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from docgrid.application import GridSessionService, configure_session_service
from docgrid.core.config import Settings, configure_logging, load_settings
from docgrid.routes import rows, sessions


def create_app(settings: Settings | None = None, *, http_client: httpx.AsyncClient | None = None) -> FastAPI:
    settings = settings or load_settings()
    configure_logging(settings.log_level)

    service = GridSessionService(settings, http_client=http_client)
    configure_session_service(service)

    @asynccontextmanager
    async def lifespan(_: FastAPI):
        yield
        await service.aclose()

    app = FastAPI(title="DocGrid Records API", version="0.1.0", lifespan=lifespan)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(sessions.router, prefix="/api")
    app.include_router(rows.router, prefix="/api")

    @app.get("/", include_in_schema=False)
    async def root() -> JSONResponse:
        """Provide a lightweight landing page for container checks."""
        return JSONResponse(
            {
                "message": "DocGrid Records API",
                "docs": "/docs",
                "upstream": settings.api_base,
            }
        )

    return app


app = create_app()
