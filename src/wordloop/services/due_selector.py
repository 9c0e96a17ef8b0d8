"""Selection of words to review."""
import logging
from typing import List, Optional

from wordloop.config import settings
from wordloop.models.srs_models import ScheduledWord
from wordloop.services.word_service import WordService

logger = logging.getLogger(__name__)


class DueSelector:
    """Decides which words qualify for review and in what order. Read-only."""

    def __init__(self, word_service: WordService):
        self.word_service = word_service

    def due_now(self, limit: Optional[int] = None, now: Optional[int] = None) -> List[ScheduledWord]:
        """Words due at ``now``, earliest due first, at most ``limit`` of them."""
        if limit is None:
            limit = settings.review.due_limit
        words = self.word_service.find_due(limit, now=now)
        logger.debug(f"{len(words)} word(s) due (limit {limit})")
        return words

    def by_level_range(
        self, min_level: int, max_level: int, limit: Optional[int] = None
    ) -> List[ScheduledWord]:
        """Words whose level lies in [min_level, max_level], due or not, earliest due first."""
        if min_level > max_level:
            raise ValueError(f"min_level {min_level} is greater than max_level {max_level}")
        if limit is None:
            limit = settings.review.due_limit
        words = self.word_service.find_by_level_range(min_level, max_level, limit)
        logger.debug(f"{len(words)} word(s) in level range {min_level}-{max_level}")
        return words

    def by_band(self, band: str, limit: Optional[int] = None) -> List[ScheduledWord]:
        """Words of a named difficulty band such as "easy", "medium" or "hard"."""
        try:
            min_level, max_level = settings.review.level_bands[band]
        except KeyError:
            raise ValueError(f"Unknown level band: {band}") from None
        return self.by_level_range(min_level, max_level, limit)
