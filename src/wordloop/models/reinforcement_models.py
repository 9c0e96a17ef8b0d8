"""Models for reinforcement-related data."""
from dataclasses import dataclass
from enum import Enum
from typing import Optional


class AnswerOutcome(Enum):
    """What a reinforcement answer did to the word's streak."""
    PROGRESSED = "progressed"  # Correct, streak grew but not yet graduated
    GRADUATED = "graduated"  # Correct, streak reached the target and the word left the list
    RESET = "reset"  # Incorrect, streak back to zero

    @property
    def is_positive(self) -> bool:
        return self is not AnswerOutcome.RESET


@dataclass(frozen=True)
class AnswerResult:
    """Result of recording one reinforcement answer."""
    word_id: str
    outcome: AnswerOutcome
    streak: int  # streak after the answer, 0 once graduated or reset


class QuestionMode(Enum):
    """Available reinforcement question styles."""
    TYPING = "typing"  # Type the meaning
    MATCHING = "matching"  # Pick the meaning among options
    TRUE_FALSE = "truefalse"  # Judge whether a shown meaning is right


class Stage(Enum):
    """Stage of the active question."""
    ANSWERING = "answering"
    FEEDBACK = "feedback"


@dataclass(frozen=True)
class Feedback:
    """User-facing feedback bound to an answer outcome."""
    message: str
    correct: bool
    result: Optional[AnswerResult] = None
