"""Quiz session state machine.

A ``QuizSession`` owns one ``SessionState`` and is the only thing allowed to
change it. Every change goes through one of the transition methods below;
anything called out of turn raises ``InvalidTransition`` and leaves the state
untouched. ``select_level`` is the only coroutine, and the source fetch inside
it is the only point where another call can interleave.
"""

import logging
from typing import Optional

from . import scoring
from .config import settings
from .errors import (
    InvalidAnswerIndex,
    InvalidTransition,
    NoValidQuestions,
    QuizError,
)
from .models import AnswerRecord, Phase, Question, SessionState, SessionView
from .normalizer import QuestionNormalizer
from .sampler import QuestionSampler
from .sources import QuestionSource

logger = logging.getLogger(__name__)

GENERIC_ERROR = "An error occurred while fetching questions. Please try again."


class QuizSession:
    def __init__(
        self,
        source: QuestionSource,
        normalizer: Optional[QuestionNormalizer] = None,
        sampler: Optional[QuestionSampler] = None,
        category: Optional[str] = None,
        pass_threshold: int = scoring.PASS_THRESHOLD,
    ):
        self.source = source
        self.normalizer = normalizer or QuestionNormalizer()
        self.sampler = sampler or QuestionSampler()
        self.category = category or settings.QUIZ_CATEGORY
        self.pass_threshold = pass_threshold
        self.state = SessionState()
        self._generation = 0

    # --- Derived reads ---
    @property
    def phase(self) -> Phase:
        return self.state.phase

    @property
    def total(self) -> int:
        return len(self.state.working_set)

    @property
    def current_question(self) -> Optional[Question]:
        if self.state.phase != Phase.READY or not self.state.working_set:
            return None
        return self.state.working_set[self.state.position]

    @property
    def is_answered(self) -> bool:
        return self.state.selected_answer_index is not None

    @property
    def is_complete(self) -> bool:
        return (
            self.state.phase == Phase.READY
            and self.is_answered
            and self.state.position == self.total - 1
        )

    @property
    def progress(self) -> float:
        if not self.total:
            return 0.0
        done = self.state.position + (1 if self.is_answered else 0)
        return done / self.total * 100

    @property
    def score(self) -> Optional[int]:
        if not self.total:
            return None
        return scoring.score(self.state.correct_count, self.total)

    # --- Transitions ---
    async def select_level(self, level: str) -> None:
        self._generation += 1
        generation = self._generation
        self.state = SessionState(
            phase=Phase.LOADING, level=level, created_at=self.state.created_at
        )
        logger.info(f"Loading questions for level {level}")

        try:
            raw_records = await self.source.fetch(level, self.category)
        except QuizError as e:
            if self._is_current(generation, level):
                self._fail(e)
            return
        except Exception as e:
            logger.exception(f"Unexpected failure fetching level {level}")
            if self._is_current(generation, level):
                self._fail(e, GENERIC_ERROR)
            return

        if not self._is_current(generation, level):
            logger.info(f"Discarding stale response for level {level}")
            return

        try:
            questions = self.normalizer.normalize_all(raw_records or [])
            if not questions:
                raise NoValidQuestions()
            working_set = self.sampler.sample(questions, level=level)
        except QuizError as e:
            self._fail(e)
            return
        except Exception as e:
            logger.exception(f"Unexpected failure preparing level {level}")
            self._fail(e, GENERIC_ERROR)
            return

        self.state.working_set = working_set
        self.state.phase = Phase.READY
        logger.info(f"Level {level} ready with {len(working_set)} questions")

    async def retry(self) -> None:
        if self.state.phase != Phase.ERROR or self.state.level is None:
            raise InvalidTransition("Nothing to retry")
        await self.select_level(self.state.level)

    def submit_answer(self, index: int) -> bool:
        """Record the answer for the current question. Returns whether it was right."""
        self._require_ready("submit an answer")
        if self.is_answered:
            raise InvalidTransition("This question has already been answered")

        question = self.state.working_set[self.state.position]
        is_int = isinstance(index, int) and not isinstance(index, bool)
        if not is_int or not 0 <= index < len(question.options):
            raise InvalidAnswerIndex(f"Option {index} does not exist")

        is_correct = index == question.correct_index
        self.state.selected_answer_index = index
        if is_correct:
            self.state.correct_count += 1
        self.state.answers.append(
            AnswerRecord(
                question_id=question.id,
                prompt=question.prompt,
                selected_index=index,
                selected_option=question.options[index],
                correct_index=question.correct_index,
                correct_option=question.correct_option,
                is_correct=is_correct,
            )
        )
        return is_correct

    def advance(self) -> None:
        self._require_ready("move to the next question")
        if not self.is_answered:
            raise InvalidTransition("Answer the current question first")
        if self.state.position >= self.total - 1:
            raise InvalidTransition("The quiz is already complete")
        self.state.selected_answer_index = None
        self.state.position += 1

    def reset(self) -> None:
        if self.state.phase == Phase.LOADING:
            raise InvalidTransition("Cannot reset while questions are loading")
        if self.state.level is None or not self.state.working_set:
            raise InvalidTransition("No questions to start over with")
        self.state.phase = Phase.READY
        self.state.position = 0
        self.state.selected_answer_index = None
        self.state.correct_count = 0
        self.state.answers = []
        self.state.error_message = None
        self.state.error_kind = None

    def change_level(self) -> None:
        # bumping the generation drops any fetch still in flight
        self._generation += 1
        self.state = SessionState(created_at=self.state.created_at)

    def view(self) -> SessionView:
        question = self.current_question
        selected = self.state.selected_answer_index
        final_score = self.score if self.is_complete else None
        return SessionView(
            phase=self.state.phase,
            level=self.state.level,
            question=question,
            position=self.state.position,
            total_questions=self.total,
            progress=self.progress,
            selected_answer_index=selected,
            is_correct=(
                selected == question.correct_index
                if question is not None and selected is not None
                else None
            ),
            correct_count=self.state.correct_count,
            is_complete=self.is_complete,
            score=final_score,
            passed=(
                scoring.is_pass(final_score, self.pass_threshold)
                if final_score is not None
                else None
            ),
            error_message=self.state.error_message,
            error_kind=self.state.error_kind,
            answers=list(self.state.answers),
        )

    # --- Helpers ---
    def _is_current(self, generation: int, level: str) -> bool:
        return (
            generation == self._generation
            and self.state.phase == Phase.LOADING
            and self.state.level == level
        )

    def _require_ready(self, action: str) -> None:
        if self.state.phase != Phase.READY:
            raise InvalidTransition(
                f"Cannot {action} while the session is {self.state.phase.value}"
            )

    def _fail(self, error: Exception, message: Optional[str] = None) -> None:
        self.state.phase = Phase.ERROR
        self.state.working_set = []
        self.state.error_message = message or str(error) or GENERIC_ERROR
        self.state.error_kind = type(error).__name__
        logger.warning(
            f"Level {self.state.level} failed ({self.state.error_kind}): {self.state.error_message}"
        )
