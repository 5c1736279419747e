from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from dryad.application import AppContext, build_context
from dryad.core.logging import RequestIdMiddleware, setup_logging
from dryad.core.settings import Settings
from dryad.routes import dashboard, directory, equipment, jobs, quotes, schedule


def create_app(settings: Settings | None = None, context: AppContext | None = None) -> FastAPI:
    settings = settings or (context.settings if context is not None else Settings.from_env())
    setup_logging(settings.log_level)

    app = FastAPI(title="Dryad Restoration API", version="0.1.0")
    app.state.context = context or build_context(settings)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(RequestIdMiddleware)

    app.include_router(jobs.router, prefix="/api")
    app.include_router(dashboard.router, prefix="/api")
    app.include_router(directory.router, prefix="/api")
    app.include_router(equipment.router, prefix="/api")
    app.include_router(quotes.router, prefix="/api")
    app.include_router(schedule.router, prefix="/api")

    @app.get("/", include_in_schema=False)
    async def root() -> JSONResponse:
        """Provide a lightweight landing page for container checks."""
        return JSONResponse(
            {
                "message": "Dryad Restoration API",
                "docs": "/docs",
                "health": "/api/jobs",
            }
        )

    return app


app = create_app()
