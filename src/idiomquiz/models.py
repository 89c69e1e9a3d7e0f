from datetime import datetime
from enum import Enum
from typing import List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field


# --- Models ---
class Phase(str, Enum):
    IDLE = "idle"
    LOADING = "loading"
    READY = "ready"
    ERROR = "error"


class Question(BaseModel):
    """A validated idiom question. Never mutated once built."""

    model_config = ConfigDict(frozen=True)

    id: str
    prompt: str
    context: str
    options: Tuple[str, ...]
    correct_index: int
    explanation: str
    tips: Tuple[str, ...] = ()

    @property
    def correct_option(self) -> str:
        return self.options[self.correct_index]


class AnswerRecord(BaseModel):
    question_id: str
    prompt: str
    selected_index: int
    selected_option: str
    correct_index: int
    correct_option: str
    is_correct: bool


class SessionState(BaseModel):
    phase: Phase = Phase.IDLE
    level: Optional[str] = None
    working_set: List[Question] = Field(default_factory=list)
    position: int = 0
    selected_answer_index: Optional[int] = None
    correct_count: int = 0
    error_message: Optional[str] = None
    error_kind: Optional[str] = None
    answers: List[AnswerRecord] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=datetime.now)


class SessionView(BaseModel):
    """Read-only snapshot handed to whatever renders the quiz."""

    phase: Phase
    level: Optional[str] = None
    question: Optional[Question] = None
    position: int = 0
    total_questions: int = 0
    progress: float = 0.0
    selected_answer_index: Optional[int] = None
    is_correct: Optional[bool] = None
    correct_count: int = 0
    is_complete: bool = False
    score: Optional[int] = None
    passed: Optional[bool] = None
    error_message: Optional[str] = None
    error_kind: Optional[str] = None
    answers: List[AnswerRecord] = Field(default_factory=list)
