"""Question styles for the reinforcement drill."""
import logging
import random
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Type, Union

from wordloop import monitoring
from wordloop.config import settings
from wordloop.errors import DegradedQuestionData
from wordloop.models.models import WordEntry
from wordloop.models.reinforcement_models import QuestionMode
from wordloop.services.word_service import WordService

logger = logging.getLogger(__name__)


def normalize(value: str) -> str:
    """Trim surrounding whitespace and case-fold."""
    return value.strip().casefold()


def get_all_subclasses(cls):
    """Get all subclasses of a class."""
    all_subclasses = []
    for subclass in cls.__subclasses__():
        all_subclasses.append(subclass)
        all_subclasses.extend(get_all_subclasses(subclass))
    return all_subclasses


@dataclass(frozen=True)
class Option:
    """One choice of a matching question."""
    label: str
    is_correct: bool


@dataclass(frozen=True)
class Statement:
    """The meaning shown by a true/false question and whether it is the right one."""
    meaning: str
    is_correct: bool


class BaseQuestion(ABC):
    """Base class for all question styles."""

    mode: QuestionMode

    def __init__(self, word: WordEntry):
        self.word = word
        self.warning: Optional[DegradedQuestionData] = None

    @property
    def prompt(self) -> str:
        return self.word.term

    @classmethod
    @abstractmethod
    def create(
        cls, word: WordEntry, word_service: WordService, rng: random.Random, option_count: int
    ) -> "BaseQuestion":
        """Build a question for ``word``. Must be implemented by subclasses."""
        raise NotImplementedError("Subclasses must implement this method")

    @abstractmethod
    def evaluate(self, answer: Any) -> bool:
        """Return whether ``answer`` is correct."""
        raise NotImplementedError("Subclasses must implement this method")

    def is_blank(self, answer: Any) -> bool:
        """Whether ``answer`` is an empty submission that should be ignored."""
        return answer is None


class TypedRecallQuestion(BaseQuestion):
    """Type the meaning of the shown term."""

    mode = QuestionMode.TYPING

    @classmethod
    def create(cls, word, word_service, rng, option_count):
        return cls(word)

    @property
    def expected(self) -> str:
        return self.word.meaning

    def hint(self) -> str:
        """First letter and length of the expected meaning."""
        return f"First letter: {self.expected[:1]} | Length: {len(self.expected)}"

    def is_blank(self, answer: Optional[str]) -> bool:
        return answer is None or not answer.strip()

    def evaluate(self, answer: str) -> bool:
        return normalize(answer) == normalize(self.expected)


class MatchingQuestion(BaseQuestion):
    """Pick the meaning of the shown term among several options."""

    mode = QuestionMode.MATCHING

    def __init__(self, word: WordEntry, options: List[Option]):
        super().__init__(word)
        self.options = options

    @classmethod
    def create(cls, word, word_service, rng, option_count):
        distractors = word_service.sample_random(option_count - 1, exclude_id=word.id)
        seen = {normalize(word.meaning)}
        options = [Option(word.meaning, True)]
        for other in distractors:
            key = normalize(other.meaning)
            if other.id == word.id or key in seen:
                continue
            seen.add(key)
            options.append(Option(other.meaning, False))
        rng.shuffle(options)

        question = cls(word, options)
        if len(options) < option_count:
            question.warning = DegradedQuestionData(cls.mode.value, len(options), option_count)
            monitoring.degraded_questions.labels(mode=cls.mode.value).inc()
            logger.warning(f"Matching question for word {word.id}: {question.warning}")
        return question

    def _resolve(self, answer: Union[Option, int, str]) -> Option:
        if isinstance(answer, Option):
            return answer
        if isinstance(answer, int) and not isinstance(answer, bool):
            return self.options[answer]
        if isinstance(answer, str):
            for option in self.options:
                if option.label == answer:
                    return option
            raise ValueError(f"No option labelled {answer!r}")
        raise TypeError(f"Unsupported matching answer: {answer!r}")

    def is_blank(self, answer: Union[Option, int, str, None]) -> bool:
        return answer is None or (isinstance(answer, str) and not answer.strip())

    def evaluate(self, answer: Union[Option, int, str]) -> bool:
        return self._resolve(answer).is_correct


class TrueFalseQuestion(BaseQuestion):
    """Judge whether the shown meaning belongs to the term."""

    mode = QuestionMode.TRUE_FALSE

    def __init__(self, word: WordEntry, statement: Statement):
        super().__init__(word)
        self.statement = statement

    @classmethod
    def create(cls, word, word_service, rng, option_count):
        if rng.random() < 0.5:
            return cls(word, Statement(word.meaning, True))

        distractors = [
            other for other in word_service.sample_random(1, exclude_id=word.id)
            if other.id != word.id and normalize(other.meaning) != normalize(word.meaning)
        ]
        if not distractors:
            # No other word, or only a synonym: the statement can only be the true one
            logger.debug(f"No distractor for word {word.id}, showing its true meaning")
            return cls(word, Statement(word.meaning, True))
        return cls(word, Statement(distractors[0].meaning, False))

    def is_blank(self, answer: Optional[bool]) -> bool:
        return not isinstance(answer, bool)

    def evaluate(self, answer: bool) -> bool:
        return answer == self.statement.is_correct


class QuestionGenerator:
    """Builds a question of the requested style for a word."""

    def __init__(
        self,
        word_service: WordService,
        rng: Optional[random.Random] = None,
        option_count: Optional[int] = None,
    ):
        self.word_service = word_service
        self.rng = rng or random.Random()
        self.option_count = option_count or settings.reinforcement.matching_option_count
        self.question_types: Dict[QuestionMode, Type[BaseQuestion]] = {
            question_class.mode: question_class
            for question_class in get_all_subclasses(BaseQuestion)
        }

    def build(self, mode: QuestionMode, word: WordEntry) -> BaseQuestion:
        """Create a new question of ``mode`` for ``word``.

        Raises:
            StorageFailure: If distractor sampling fails.
        """
        question_class = self.question_types.get(mode)
        if not question_class:
            raise ValueError(f"Unknown question mode: {mode}")
        logger.debug(f"Building {mode.value} question for word {word.id}")
        return question_class.create(word, self.word_service, self.rng, self.option_count)
