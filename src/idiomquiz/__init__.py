from .errors import (
    InsufficientUniqueQuestions,
    InvalidAnswerIndex,
    InvalidTransition,
    NoQuestionsAvailable,
    NoValidQuestions,
    QuizError,
    RetrievalFailure,
)
from .models import AnswerRecord, Phase, Question, SessionState, SessionView
from .normalizer import QuestionNormalizer
from .sampler import QuestionSampler
from .scoring import PASS_THRESHOLD, is_pass, score
from .session import QuizSession
from .sources import HttpQuestionSource, LocalQuestionSource, QuestionSource

__all__ = [
    "AnswerRecord",
    "HttpQuestionSource",
    "InsufficientUniqueQuestions",
    "InvalidAnswerIndex",
    "InvalidTransition",
    "LocalQuestionSource",
    "NoQuestionsAvailable",
    "NoValidQuestions",
    "PASS_THRESHOLD",
    "Phase",
    "Question",
    "QuestionNormalizer",
    "QuestionSampler",
    "QuestionSource",
    "QuizError",
    "QuizSession",
    "RetrievalFailure",
    "SessionState",
    "SessionView",
    "is_pass",
    "score",
]
