from __future__ import annotations  # FastAPI server exposing draft administration

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from api.routes import router, webhook_router
from config.settings import settings
from storage.migrate import migrate


logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_: FastAPI) -> AsyncIterator[None]:
    migrate(settings.DB_PATH)
    logger.info("Draft database ready at %s", settings.DB_PATH)
    yield


app = FastAPI(title="Draft Lifecycle API", lifespan=lifespan)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"]
)
app.include_router(router)
app.include_router(webhook_router)


@app.get("/api/webhooks/health")
def webhook_health() -> dict:
    return {
        "success": True,
        "message": "Webhook endpoints are healthy",
        "endpoints": {"draft": "/api/webhooks/draft-complete"},
    }


if __name__ == "__main__":  # pragma: no cover - manual launch
    import uvicorn

    uvicorn.run("api_server:app", host="0.0.0.0", port=8000, reload=False)
