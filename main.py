# main.py
import logging
import os
import sys
from typing import List, Optional

import uvicorn
from dotenv import load_dotenv
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import FileResponse, JSONResponse, PlainTextResponse
from sqlalchemy.exc import SQLAlchemyError
from starlette.concurrency import run_in_threadpool
from starlette.exceptions import HTTPException as StarletteHTTPException

from database import MessageStore
from exceptions import (
    SERVER_ERROR_MESSAGE,
    HistoryUnavailableException,
    MessageRequiredException,
    ServerErrorException,
)
from logging_config import setup_logging
from middleware import RateLimitMiddleware, RequestLoggingMiddleware
from models import ChatRequest, ChatResponse, ErrorResponse, HistoryItem
from providers import build_provider
from retry import generate_with_retry
from settings import ConfigurationError, Settings, load_settings

logger = logging.getLogger(__name__)

ERROR_RESPONSES = {
    400: {"model": ErrorResponse},
    429: {"model": ErrorResponse},
    500: {"model": ErrorResponse},
}


# --- Error handlers ---

async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(status_code=exc.status_code, content={"error": exc.detail}, headers=exc.headers)


async def validation_exception_handler(request: Request, exc: RequestValidationError):
    # the only request body is ChatRequest, so a malformed body means no usable message
    return JSONResponse(status_code=400, content={"error": MessageRequiredException().detail})


async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content={"error": SERVER_ERROR_MESSAGE})


# --- Static frontend ---

def mount_frontend(app: FastAPI, static_dir: str) -> None:
    """Serve a built single-page frontend, falling back to index.html."""
    root = os.path.realpath(static_dir)
    index = os.path.join(root, "index.html")

    @app.get("/{full_path:path}", include_in_schema=False)
    async def frontend(full_path: str):
        candidate = os.path.realpath(os.path.join(root, full_path))
        if candidate.startswith(root + os.sep) and os.path.isfile(candidate):
            return FileResponse(candidate)
        if os.path.isfile(index):
            return FileResponse(index)
        raise StarletteHTTPException(status_code=404, detail="Not Found")


# --- App ---

def create_app(settings: Settings, provider=None, store: Optional[MessageStore] = None, sleep=None) -> FastAPI:
    """Build the API around explicitly passed dependencies.

    ``provider`` and ``store`` default to the ones described by ``settings``;
    tests pass fakes. ``sleep`` replaces the retry delay.
    """
    provider = provider or build_provider(settings)
    store = store or MessageStore(settings.DATABASE_URL)
    store.init_db()

    app = FastAPI(title="ChatBot API", version="1.0.0")
    app.state.settings = settings
    app.state.provider = provider
    app.state.store = store
    app.state.sleep = sleep

    # --- Middleware (last added runs first) ---
    app.add_middleware(
        RateLimitMiddleware,
        max_requests=settings.RATE_LIMIT_MAX,
        window_seconds=settings.RATE_LIMIT_WINDOW_SECONDS,
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(RequestLoggingMiddleware)

    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)

    @app.get("/", response_class=PlainTextResponse)
    def root():
        return "Server is running!"

    @app.get("/healthz")
    def healthz():
        return {"ok": True}

    @app.post("/api/chat", response_model=ChatResponse, responses=ERROR_RESPONSES)
    async def chat(req: ChatRequest, request: Request):
        request_id = request.state.request_id
        logger.info("Chat request request_id=%s: %s", request_id, req.message)
        if not req.message:
            raise MessageRequiredException()

        state = request.app.state
        try:
            reply = await generate_with_retry(state.provider, req.message, sleep=state.sleep)
        except StarletteHTTPException:
            raise
        except Exception:
            logger.exception("Chat error request_id=%s", request_id)
            raise ServerErrorException()

        # history is best-effort; a failed write must not hide a good reply
        try:
            await run_in_threadpool(state.store.save, req.message, reply)
        except SQLAlchemyError:
            logger.exception("Failed to save chat message request_id=%s", request_id)

        return ChatResponse(reply=reply)

    @app.get("/api/chat/history", response_model=List[HistoryItem], responses={500: {"model": ErrorResponse}})
    def chat_history(request: Request):
        try:
            records = request.app.state.store.recent()
        except Exception:
            logger.exception("Chat history error request_id=%s", request.state.request_id)
            raise HistoryUnavailableException()
        return [HistoryItem(**r.to_dict()) for r in records]

    if os.path.isdir(settings.STATIC_DIR):
        mount_frontend(app, settings.STATIC_DIR)

    return app


def main():
    load_dotenv(override=True)
    setup_logging(os.getenv("LOG_LEVEL", "INFO").upper())

    try:
        settings = load_settings()
        app = create_app(settings)
    except ConfigurationError as e:
        logger.error("%s", e)
        sys.exit(1)
    except SQLAlchemyError as e:
        logger.error("Database connection error: %s", e)
        sys.exit(1)

    logger.info("Server is running on http://localhost:%d", settings.PORT)
    uvicorn.run(app, host="0.0.0.0", port=settings.PORT, log_level=settings.LOG_LEVEL.lower())


if __name__ == "__main__":
    main()
