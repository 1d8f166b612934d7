import logging

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from school_ledger.api.v1.audit.router import router as sessions_router
from school_ledger.api.v1.ledger.router import router as ledger_router
from school_ledger.api.v1.refunds.router import router as refunds_router
from school_ledger.api.v1.sections.router import router as sections_router
from school_ledger.core.config import settings
from school_ledger.core.notifications import register_notification_subscribers


def configure_logging() -> None:
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def create_app() -> FastAPI:
    configure_logging()
    app = FastAPI(title="School Ledger")

    # CORS: allow frontend to call this API
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_notification_subscribers()

    # Routers
    app.include_router(sessions_router)
    app.include_router(sections_router)
    app.include_router(ledger_router)
    app.include_router(refunds_router)

    @app.get("/health", tags=["health"])
    async def health() -> dict:
        return {"status": "ok"}

    return app


app = create_app()


def run() -> None:
    """Serve the API with uvicorn on HOST:PORT."""
    uvicorn.run("school_ledger.main:app", host=settings.host, port=settings.port, log_level=settings.log_level.lower())
