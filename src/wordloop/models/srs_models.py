"""Models for scheduling-related data structures."""
from dataclasses import dataclass
from enum import Enum, IntEnum
from typing import Optional

from wordloop.errors import InvalidGrade
from wordloop.models.models import SrsStateRecord, WordEntry

INITIAL_EASE = 2.5


class Grade(IntEnum):
    """Self-assessed recall quality for one review."""
    FAIL = 0  # Forgot the word
    HARD = 3  # Recalled with effort
    EASY = 5  # Recalled easily

    @classmethod
    def parse(cls, value: object) -> "Grade":
        """Convert a raw grade into a Grade, rejecting anything outside {0, 3, 5}."""
        if isinstance(value, cls):
            return value
        if isinstance(value, bool) or not isinstance(value, int):
            raise InvalidGrade(value)
        try:
            return cls(value)
        except ValueError:
            raise InvalidGrade(value) from None


class Direction(Enum):
    """Direction a word was shown in during review."""
    EN_TO_TR = "EN->TR"
    TR_TO_EN = "TR->EN"


@dataclass(frozen=True)
class SchedulingState:
    """Spaced-repetition state of one word."""
    ease: float = INITIAL_EASE
    interval_days: int = 0
    repetitions: int = 0
    lapses: int = 0
    due_at: int = 0  # epoch milliseconds
    last_reviewed_at: Optional[int] = None

    @classmethod
    def initial(cls, now: int) -> "SchedulingState":
        """State of a freshly added word, due immediately."""
        return cls(due_at=now)

    @classmethod
    def from_record(cls, record: SrsStateRecord) -> "SchedulingState":
        """Build a state from its database row."""
        return cls(
            ease=record.ease,
            interval_days=record.interval_days,
            repetitions=record.repetitions,
            lapses=record.lapses,
            due_at=record.due_at,
            last_reviewed_at=record.last_reviewed_at,
        )

    def apply_to(self, record: SrsStateRecord) -> None:
        """Copy this state onto a database row."""
        record.ease = self.ease
        record.interval_days = self.interval_days
        record.repetitions = self.repetitions
        record.lapses = self.lapses
        record.due_at = self.due_at
        record.last_reviewed_at = self.last_reviewed_at


@dataclass(frozen=True)
class ScheduledWord:
    """A word together with its scheduling state."""
    word: WordEntry
    state: SchedulingState

    @property
    def id(self) -> str:
        return self.word.id


@dataclass(frozen=True)
class ReviewLogRecord:
    """Immutable review history entry."""
    word_id: str
    grade: Grade
    direction: Direction
    reviewed_at: int
