from typing import Dict

from .config import settings
from .sampler import QuestionSampler
from .session import QuizSession
from .sources import QuestionSource, SourceFactory

question_source: QuestionSource = SourceFactory.create(settings)
sessions: Dict[str, QuizSession] = {}


def new_session(source: QuestionSource) -> QuizSession:
    return QuizSession(
        source,
        sampler=QuestionSampler(size=settings.QUIZ_SIZE),
        category=settings.QUIZ_CATEGORY,
        pass_threshold=settings.PASS_THRESHOLD,
    )
