"""Exceptions raised by the question pipeline and the quiz session."""


class QuizError(Exception):
    """Base class for every idiomquiz error."""


class RetrievalFailure(QuizError):
    """The question source was unreachable or answered with an error."""

    def __init__(self, message: str = "Failed to fetch questions"):
        super().__init__(message)


class NoValidQuestions(QuizError):
    """Nothing usable survived normalization."""

    def __init__(self, message: str = "No valid questions available for this level."):
        super().__init__(message)


class InsufficientUniqueQuestions(NoValidQuestions):
    """Deduplication left an empty set."""

    def __init__(self, level=None):
        self.level = level
        super().__init__(
            f"Not enough unique questions available for level {level}. "
            "Please add more questions."
        )


NoQuestionsAvailable = InsufficientUniqueQuestions


class InvalidTransition(QuizError):
    """The operation is not allowed in the session's current phase."""


class InvalidAnswerIndex(InvalidTransition):
    """The selected option does not exist on the current question."""
