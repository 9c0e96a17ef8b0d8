"""Service for grading reviews and feeding missed words to reinforcement."""
import logging
from typing import List, Optional, Union

from wordloop import monitoring
from wordloop.config import settings
from wordloop.errors import EnqueueFailure, StorageFailure
from wordloop.models.srs_models import Direction, Grade, ScheduledWord, SchedulingState
from wordloop.services.reinforcement_list import ReinforcementList
from wordloop.services.word_service import WordService

logger = logging.getLogger(__name__)


class ReviewService:
    """Grades reviews and keeps the reinforcement list in sync with them."""

    def __init__(self, word_service: WordService, reinforcement_list: ReinforcementList):
        """Initialize the service with its collaborators."""
        self.word_service = word_service
        self.reinforcement_list = reinforcement_list

    def grade(
        self,
        word_id: str,
        grade: Union[Grade, int],
        direction: Union[Direction, str, None] = None,
        now: Optional[int] = None,
    ) -> SchedulingState:
        """Grade one review.

        The scheduling update and its review log entry are persisted first; a
        grade below EASY then puts the word on the reinforcement list.

        Raises:
            InvalidGrade: If ``grade`` is not 0, 3 or 5.
            NotFound: If the word has no scheduling state.
            EnqueueFailure: If the grade was saved but the word could not be added
                to the reinforcement list. Carries the new state.
            StorageFailure: If saving the grade fails; nothing was changed.
        """
        grade = Grade.parse(grade)
        direction = Direction(direction or settings.review.direction)
        state = self.word_service.apply_grade(word_id, grade, direction, now=now)
        monitoring.reviews_graded.labels(grade=grade.name).inc()

        if grade < Grade.EASY:
            try:
                self.reinforcement_list.enqueue(word_id)
            except StorageFailure as e:
                logger.error(f"Word {word_id} graded but not added to reinforcement list: {e}")
                raise EnqueueFailure(word_id, state, e) from e
        return state

    def retry_enqueue(self, word_id: str) -> bool:
        """Put a graded word on the reinforcement list after an EnqueueFailure."""
        return self.reinforcement_list.enqueue(word_id)

    def load_reinforcement_words(self) -> List[ScheduledWord]:
        """Words currently on the reinforcement list, pruning ids whose words are gone."""
        ids = self.reinforcement_list.load()
        words = self.word_service.find_by_ids(ids)
        if len(words) != len(ids):
            removed = self.reinforcement_list.prune(item.id for item in words)
            logger.debug(f"Dropped {len(removed)} deleted word(s) from reinforcement list")
        return words
