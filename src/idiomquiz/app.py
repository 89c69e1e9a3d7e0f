import logging
import os
from contextlib import asynccontextmanager
from logging.handlers import RotatingFileHandler

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from . import globals as state
from .config import settings
from .database import init_db
from .errors import InvalidAnswerIndex, InvalidTransition
from .log_handler import SQLiteHandler
from .router import router

LOG_FORMAT = "%(asctime)s - %(levelname)s - %(name)s - %(message)s"


# --- Logging Setup ---
def setup_logging():
    logger = logging.getLogger("idiomquiz")
    logger.setLevel(logging.INFO)
    if logger.handlers:
        return

    os.makedirs(settings.LOG_DIR, exist_ok=True)
    log_path = os.path.join(settings.LOG_DIR, settings.LOG_FILE)
    file_handler = RotatingFileHandler(log_path, maxBytes=5_000_000, backupCount=3)
    file_handler.setFormatter(logging.Formatter(LOG_FORMAT))
    logger.addHandler(file_handler)

    if settings.LOG_TO_DB:
        init_db()
        db_handler = SQLiteHandler()
        db_handler.setLevel(logging.WARNING)
        db_handler.setFormatter(logging.Formatter("%(message)s"))
        logger.addHandler(db_handler)

    # Also configure root logger to see logs from other libraries
    logging.basicConfig(level=logging.INFO)


# --- Lifecycle ---
@asynccontextmanager
async def lifespan(app: FastAPI):
    levels = state.question_source.levels()
    logging.getLogger("idiomquiz").info(f"Question source ready, levels: {levels}")
    yield


# --- Error Handlers ---
async def invalid_answer_handler(request: Request, exc: InvalidAnswerIndex):
    return JSONResponse({"error": str(exc)}, status_code=400)


async def invalid_transition_handler(request: Request, exc: InvalidTransition):
    return JSONResponse({"error": str(exc)}, status_code=409)


# --- App Factory ---
def create_app() -> FastAPI:
    setup_logging()
    app = FastAPI(
        title=settings.PROJECT_NAME,
        debug=settings.DEBUG,
        lifespan=lifespan,
        root_path=settings.ROOT_PATH,
    )

    app.add_exception_handler(InvalidAnswerIndex, invalid_answer_handler)
    app.add_exception_handler(InvalidTransition, invalid_transition_handler)
    app.include_router(router)

    return app
