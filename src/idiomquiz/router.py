import logging
import uuid
from datetime import datetime, timedelta
from typing import Optional

from fastapi import APIRouter, Cookie, Depends, Form, Response
from fastapi.responses import JSONResponse

from . import globals as state
from .config import settings
from .models import SessionView
from .session import QuizSession
from .sources import QuestionSource

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api")


# --- Dependencies ---
def get_session_id(
    session_id: Optional[str] = Cookie(None, alias=settings.SESSION_COOKIE_NAME)
) -> Optional[str]:
    return session_id


def get_question_source() -> QuestionSource:
    return state.question_source


def is_expired(session: QuizSession) -> bool:
    return datetime.now() - session.state.created_at > timedelta(
        minutes=settings.SESSION_TIMEOUT_MINUTES
    )


def purge_expired_sessions() -> int:
    expired = [sid for sid, session in state.sessions.items() if is_expired(session)]
    for sid in expired:
        del state.sessions[sid]
    if expired:
        logger.info(f"Purged {len(expired)} expired sessions")
    return len(expired)


def get_active_session(session_id: Optional[str]) -> Optional[QuizSession]:
    if not session_id or session_id not in state.sessions:
        return None
    session = state.sessions[session_id]
    if is_expired(session):
        del state.sessions[session_id]
        logger.info(f"Session expired: {session_id}")
        return None
    return session


def get_or_create_session(
    response: Response,
    session_id: Optional[str] = Depends(get_session_id),
    source: QuestionSource = Depends(get_question_source),
) -> QuizSession:
    session = get_active_session(session_id)
    if session is not None:
        return session

    purge_expired_sessions()
    new_id = str(uuid.uuid4())
    session = state.new_session(source)
    state.sessions[new_id] = session
    logger.info(f"New session: {new_id}")
    response.set_cookie(
        key=settings.SESSION_COOKIE_NAME,
        value=new_id,
        httponly=True,
        samesite="lax",
    )
    return session


def invalid_session() -> JSONResponse:
    return JSONResponse({"error": "Session invalid"}, status_code=401)


# --- Routes ---
@router.get("/levels")
async def get_levels(source: QuestionSource = Depends(get_question_source)):
    return {"levels": source.levels()}


@router.get("/session", response_model=SessionView)
async def get_session(session: QuizSession = Depends(get_or_create_session)):
    return session.view()


@router.post("/level", response_model=SessionView)
async def select_level(
    level: str = Form(...),
    session: QuizSession = Depends(get_or_create_session),
):
    await session.select_level(level)
    return session.view()


@router.post("/retry", response_model=SessionView)
async def retry(session_id: Optional[str] = Depends(get_session_id)):
    session = get_active_session(session_id)
    if not session:
        return invalid_session()
    await session.retry()
    return session.view()


@router.post("/answer", response_model=SessionView)
async def submit_answer(
    selected_option_index: int = Form(...),
    session_id: Optional[str] = Depends(get_session_id),
):
    session = get_active_session(session_id)
    if not session:
        return invalid_session()
    session.submit_answer(selected_option_index)
    return session.view()


@router.post("/next", response_model=SessionView)
async def next_question(session_id: Optional[str] = Depends(get_session_id)):
    session = get_active_session(session_id)
    if not session:
        return invalid_session()
    session.advance()
    return session.view()


@router.post("/reset", response_model=SessionView)
async def reset(session_id: Optional[str] = Depends(get_session_id)):
    session = get_active_session(session_id)
    if not session:
        return invalid_session()
    session.reset()
    return session.view()


@router.post("/change-level", response_model=SessionView)
async def change_level(session_id: Optional[str] = Depends(get_session_id)):
    session = get_active_session(session_id)
    if not session:
        return invalid_session()
    session.change_level()
    return session.view()


@router.get("/result")
async def get_result(session_id: Optional[str] = Depends(get_session_id)):
    session = get_active_session(session_id)
    if not session:
        return invalid_session()
    if not session.is_complete:
        return JSONResponse({"error": "Quiz not finished"}, status_code=409)

    view = session.view()
    return {
        "level": view.level,
        "correct_count": view.correct_count,
        "total_questions": view.total_questions,
        "score_percentage": view.score,
        "passed": view.passed,
        "answers": view.answers,
    }
