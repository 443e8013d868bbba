from __future__ import annotations

import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from api.dependencies import get_cors_origins
from api.routes.boards import router as boards_router
from api.routes.cards import router as cards_router
from api.routes.users import router as users_router

logger = logging.getLogger(__name__)


def create_app() -> FastAPI:
    app = FastAPI(title="Cardboard API", version="0.1.0")
    origins = get_cors_origins()
    logger.info("Allowing CORS origins: %s", ", ".join(origins))
    # Credentials only with an explicit origin list.
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials="*" not in origins,
        allow_methods=["GET", "POST", "PATCH", "DELETE"],
        allow_headers=["*"],
    )

    for router in (users_router, boards_router, cards_router):
        app.include_router(router)

    @app.get("/healthz")
    def health() -> dict:
        return {"status": "ok"}

    return app


app = create_app()
