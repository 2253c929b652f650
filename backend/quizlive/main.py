"""FastAPI application entry point.

This module wires together the API routers, installs the handlers that turn
engine errors into JSON responses, and exposes the ASGI application object
used by the server.
"""

import os
import logging
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import OperationalError
from quizlive.routes import control, answers, rankings, reorder
from quizlive.database import create_db_and_tables
from quizlive.errors import QuizError

# Basic logging configuration.  The log level can be controlled with an
# environment variable so deployments can adjust verbosity without code
# changes.
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
logging.basicConfig(level=getattr(logging, LOG_LEVEL))
logger = logging.getLogger(__name__)

app = FastAPI(title="quizlive")

# CORS setup
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.on_event("startup")
async def on_startup():
    """Create any missing tables."""

    await create_db_and_tables()


app.include_router(control.router)
app.include_router(answers.router)
app.include_router(rankings.router)
app.include_router(reorder.router)


@app.get("/")
async def read_root():
    return {"message": "quizlive API"}


@app.exception_handler(QuizError)
async def quiz_error_handler(request: Request, exc: QuizError):
    """Render engine errors as ``{"code", "message"}`` with their status."""
    if exc.status_code >= 500 or exc.status_code == 404:
        logger.error("%s on %s: %s", exc.code, request.url.path, exc.message)
    else:
        logger.info("%s on %s: %s", exc.code, request.url.path, exc.message)
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.exception_handler(OperationalError)
async def storage_error_handler(request: Request, exc: OperationalError):
    logger.warning("Storage unavailable during request %s: %s", request.url.path, exc)
    return JSONResponse(
        status_code=503,
        content={
            "code": "storage_unavailable",
            "message": "The database is temporarily unavailable; retry the request",
        },
    )


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Catch-all exception handler that logs the stack trace once."""
    logger.exception("Unhandled error during request %s", request.url.path)
    return JSONResponse(
        status_code=500,
        content={
            "code": "internal_server_error",
            "message": "An unexpected error occurred",
        },
    )
