from __future__ import annotations  # FastAPI server exposing the adaptive assessment engine

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from api.routes import resume_router, router
from config.settings import settings
from storage.migrate import migrate


logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_: FastAPI) -> AsyncIterator[None]:  # Apply schema before serving
    migrate(settings.DB_PATH)
    yield


app = FastAPI(title="Adaptive Assessment API", lifespan=lifespan)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"]
)
app.include_router(router)
app.include_router(resume_router)


@app.exception_handler(Exception)
async def unexpected_error(_: Request, exc: Exception) -> JSONResponse:  # Last-resort 500 with a logged traceback
    logger.exception("Unexpected error while handling request", exc_info=exc)
    return JSONResponse(status_code=500, content={"detail": {"error": "INTERNAL", "message": "Unexpected server error"}})


@app.get("/api/health")
def health() -> dict:  # Liveness probe
    return {"status": "ok"}
