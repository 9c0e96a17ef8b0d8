"""Reinforcement drill session: answering and feedback stages over the reinforcement list."""
import logging
import random
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence

from wordloop.models.models import WordEntry
from wordloop.models.reinforcement_models import (
    AnswerOutcome,
    AnswerResult,
    Feedback,
    QuestionMode,
    Stage,
)
from wordloop.services.question_generator import BaseQuestion, QuestionGenerator, TypedRecallQuestion
from wordloop.services.reinforcement_list import ReinforcementList
from wordloop.services.word_service import WordService

logger = logging.getLogger(__name__)


def pick_random_id(
    ids: Sequence[str], avoid_id: Optional[str] = None, rng: Optional[random.Random] = None
) -> Optional[str]:
    """Pick a random id, avoiding ``avoid_id`` whenever another candidate exists."""
    if not ids:
        return None
    if len(ids) == 1:
        return ids[0]
    candidates = [word_id for word_id in ids if word_id != avoid_id] or list(ids)
    return (rng or random).choice(candidates)


def feedback_message(result: AnswerResult, required_streak: int) -> str:
    """User-facing text for an answer outcome."""
    if result.outcome is AnswerOutcome.GRADUATED:
        return "Streak complete, word learned."
    if result.outcome is AnswerOutcome.PROGRESSED:
        return f"Correct! {result.streak}/{required_streak}"
    return f"Wrong. {required_streak} correct answers in a row needed again."


@dataclass
class ModeState:
    """Ephemeral per-question state of the active mode."""
    stage: Stage = Stage.ANSWERING
    question: Optional[BaseQuestion] = None
    input_value: str = ""
    show_hint: bool = False
    feedback: Optional[Feedback] = None
    pending_next_id: Optional[str] = None


class ReinforcementSession:
    """Drives one reinforcement drill.

    Each mode cycles answering -> feedback -> answering. Only ``submit`` is
    accepted while answering and only ``advance`` while in feedback, so there
    is never more than one storage call in flight per user action.
    """

    def __init__(
        self,
        reinforcement_list: ReinforcementList,
        word_service: WordService,
        generator: QuestionGenerator,
        rng: Optional[random.Random] = None,
        mode: QuestionMode = QuestionMode.TYPING,
    ):
        self.reinforcement_list = reinforcement_list
        self.word_service = word_service
        self.generator = generator
        self.rng = rng or random.Random()
        self.words: Dict[str, WordEntry] = {}
        self.current_id: Optional[str] = None
        self._mode = mode
        self._state = ModeState()

    def load(self) -> None:
        """Load the list, rehydrate its words and pick the first one.

        Ids whose words no longer exist are pruned silently.
        """
        ids = self.reinforcement_list.load()
        scheduled = self.word_service.find_by_ids(ids)
        words = {item.id: item.word for item in scheduled}
        if len(words) != len(ids):
            self.reinforcement_list.prune(words)
        current_id = pick_random_id(self._candidates(words), rng=self.rng)
        question = self._build(self._mode, words.get(current_id))

        self.words = words
        self.current_id = current_id
        self._state = ModeState(question=question)
        logger.info(f"Reinforcement session loaded with {len(words)} words")

    def _candidates(self, words: Optional[Dict[str, WordEntry]] = None) -> List[str]:
        words = self.words if words is None else words
        return [word_id for word_id in self.reinforcement_list.ids if word_id in words]

    def _build(self, mode: QuestionMode, word: Optional[WordEntry]) -> Optional[BaseQuestion]:
        if word is None:
            return None
        return self.generator.build(mode, word)

    @property
    def mode(self) -> QuestionMode:
        return self._mode

    @property
    def stage(self) -> Stage:
        return self._state.stage

    @property
    def question(self) -> Optional[BaseQuestion]:
        return self._state.question

    @property
    def feedback(self) -> Optional[Feedback]:
        return self._state.feedback

    @property
    def input_value(self) -> str:
        return self._state.input_value

    @property
    def show_hint(self) -> bool:
        return self._state.show_hint

    @property
    def current_word(self) -> Optional[WordEntry]:
        if self.current_id is None:
            return None
        return self.words.get(self.current_id)

    @property
    def is_empty(self) -> bool:
        return self.current_word is None

    @property
    def remaining(self) -> int:
        return len(self.reinforcement_list)

    @property
    def streak(self) -> int:
        if self.current_id is None:
            return 0
        return self.reinforcement_list.streak(self.current_id)

    @property
    def warning(self) -> Optional[str]:
        """Non-blocking warning about the current question, if its data is degraded."""
        question = self._state.question
        if question is None or question.warning is None:
            return None
        return str(question.warning)

    @property
    def hint(self) -> Optional[str]:
        question = self._state.question
        if not self._state.show_hint or not isinstance(question, TypedRecallQuestion):
            return None
        return question.hint()

    def set_input(self, text: str) -> None:
        """Update the typed-answer buffer."""
        if self._state.stage is Stage.ANSWERING:
            self._state.input_value = text

    def toggle_hint(self) -> bool:
        """Show or hide the typed-recall hint. Returns the new visibility."""
        if self._mode is QuestionMode.TYPING and self._state.stage is Stage.ANSWERING:
            self._state.show_hint = not self._state.show_hint
        return self._state.show_hint

    def switch_mode(self, mode: QuestionMode) -> None:
        """Change question style, discarding the in-flight question of the current one."""
        if mode is self._mode:
            return
        current_id = self.current_id
        if current_id not in self.reinforcement_list:
            # The word graduated before the continue action
            current_id = pick_random_id(self._candidates(), avoid_id=current_id, rng=self.rng)
        question = self._build(mode, self.words.get(current_id) if current_id else None)

        logger.debug(f"Switching reinforcement mode {self._mode.value} -> {mode.value}")
        self._mode = mode
        self.current_id = current_id
        self._state = ModeState(question=question)

    def submit(self, answer: Any = None) -> Optional[Feedback]:
        """Answer the current question.

        In typing mode ``answer`` defaults to the input buffer. Empty answers,
        and any submit outside the answering stage, are ignored and return None.

        Raises:
            StorageFailure: If the list could not be saved; nothing changes.
        """
        state = self._state
        word = self.current_word
        if state.stage is not Stage.ANSWERING or state.question is None or word is None:
            logger.debug(f"Ignoring submit in stage {state.stage.value}")
            return None
        if answer is None and self._mode is QuestionMode.TYPING:
            answer = state.input_value
        if state.question.is_blank(answer):
            return None

        correct = state.question.evaluate(answer)
        result = self.reinforcement_list.record_answer(word.id, correct)
        feedback = Feedback(
            message=feedback_message(result, self.reinforcement_list.required_streak),
            correct=correct,
            result=result,
        )

        state.stage = Stage.FEEDBACK
        state.feedback = feedback
        if isinstance(answer, str) and self._mode is QuestionMode.TYPING:
            state.input_value = answer
        state.pending_next_id = pick_random_id(self._candidates(), avoid_id=word.id, rng=self.rng)
        logger.debug(
            f"Answer for word {word.id} in {self._mode.value}: {result.outcome.value}, "
            f"next candidate {state.pending_next_id}"
        )
        return feedback

    def advance(self) -> Optional[str]:
        """Continue after feedback.

        A correct answer moves to the pre-selected next word (None once the list
        is empty); an incorrect one keeps the same word for a retry. Either way
        a fresh question is built. Returns the new current word id.
        """
        state = self._state
        if state.stage is not Stage.FEEDBACK:
            logger.debug(f"Ignoring continue in stage {state.stage.value}")
            return self.current_id

        if state.feedback is not None and state.feedback.correct:
            next_id = state.pending_next_id
        else:
            next_id = self.current_id
        question = self._build(self._mode, self.words.get(next_id) if next_id else None)

        self.current_id = next_id
        self._state = ModeState(question=question)
        if next_id is None:
            logger.info("Reinforcement list is empty")
        return next_id
