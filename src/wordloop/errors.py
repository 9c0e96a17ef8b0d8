"""Error types raised by the scheduling and reinforcement engine."""
from typing import Optional


class WordloopError(Exception):
    """Base class for wordloop errors."""


class InvalidGrade(WordloopError, ValueError):
    """Raised when a grade is not one of FAIL (0), HARD (3) or EASY (5)."""

    def __init__(self, grade: object):
        self.grade = grade
        super().__init__(f"Invalid grade: {grade!r} (expected 0, 3 or 5)")


class NotFound(WordloopError, LookupError):
    """Raised when a word or its scheduling state does not exist."""

    def __init__(self, word_id: str, what: str = "scheduling state"):
        self.word_id = word_id
        super().__init__(f"No {what} for word {word_id}")


class DuplicateWord(WordloopError, ValueError):
    """Raised when adding a term that is already stored."""

    def __init__(self, term: str):
        self.term = term
        super().__init__(f"Term already exists: {term}")


class DegradedQuestionData(WordloopError):
    """Not enough distractors to build a full question.

    Carried on the question as a warning, the question itself stays usable.
    """

    def __init__(self, mode: str, available: int, expected: int):
        self.mode = mode
        self.available = available
        self.expected = expected
        super().__init__(
            f"Only {available} of {expected} options available for {mode}; add more words"
        )


class StorageFailure(WordloopError):
    """A storage call failed. In-memory state is left unchanged."""

    def __init__(self, operation: str, cause: Optional[BaseException] = None):
        self.operation = operation
        message = f"Storage operation '{operation}' failed"
        if cause is not None:
            message += f": {cause}"
        super().__init__(message)


class EnqueueFailure(StorageFailure):
    """The grade was saved but the word could not be put on the reinforcement list.

    Grading again would apply the review twice; retry only the enqueue.
    """

    def __init__(self, word_id: str, state: object, cause: Optional[BaseException] = None):
        self.word_id = word_id
        self.state = state
        super().__init__("enqueue", cause)
