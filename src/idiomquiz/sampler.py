import random
from typing import Any, Dict, Iterable, List, Optional

from .errors import InsufficientUniqueQuestions
from .models import Question

QUIZ_SIZE = 10


class QuestionSampler:
    """Deduplicates questions by prompt and draws a shuffled working set."""

    def __init__(self, size: int = QUIZ_SIZE, rng: Optional[random.Random] = None):
        if size < 1:
            raise ValueError("size must be at least 1")
        self.size = size
        self.rng = rng or random.Random()

    @staticmethod
    def deduplicate(questions: Iterable[Question]) -> List[Question]:
        # later duplicates overwrite earlier ones but keep the first slot
        unique: Dict[str, Question] = {}
        for question in questions:
            unique[question.prompt] = question
        return list(unique.values())

    def sample(self, questions: Iterable[Question], level: Any = None) -> List[Question]:
        pool = self.deduplicate(questions)
        if not pool:
            raise InsufficientUniqueQuestions(level)
        self.rng.shuffle(pool)
        return pool[: min(self.size, len(pool))]
