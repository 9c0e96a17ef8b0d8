"""Service for managing words and their scheduling state."""
import logging
from typing import Iterable, List, Optional, Union

from sqlalchemy import func, or_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from wordloop import monitoring
from wordloop.config import settings
from wordloop.errors import DuplicateWord, NotFound, StorageFailure
from wordloop.models.base import now_ms
from wordloop.models.models import ReviewLog, SrsStateRecord, WordEntry
from wordloop.models.srs_models import (
    Direction,
    Grade,
    ReviewLogRecord,
    ScheduledWord,
    SchedulingState,
)
from wordloop.services import srs

logger = logging.getLogger(__name__)


class WordService:
    """Word store: owns words, their scheduling state and the review log."""

    def __init__(self, db: Session):
        """Initialize the service with a database session."""
        self.db = db

    def _fail(self, operation: str, error: SQLAlchemyError) -> StorageFailure:
        self.db.rollback()
        monitoring.storage_errors.labels(operation=operation).inc()
        logger.error(f"Storage operation {operation} failed: {error}")
        return StorageFailure(operation, error)

    def _scheduled_query(self):
        return (
            self.db.query(WordEntry, SrsStateRecord)
            .join(SrsStateRecord, SrsStateRecord.word_entry_id == WordEntry.id)
        )

    @staticmethod
    def _to_scheduled(rows) -> List[ScheduledWord]:
        return [ScheduledWord(word, SchedulingState.from_record(record)) for word, record in rows]

    def add_word(
        self,
        term: str,
        meaning: str,
        meaning_en: Optional[str] = None,
        example: Optional[str] = None,
        part_of_speech: Optional[str] = None,
        level: Optional[int] = None,
        notes: Optional[str] = None,
        now: Optional[int] = None,
    ) -> WordEntry:
        """Create a word together with its initial scheduling state (due now)."""
        term = term.strip()
        meaning = meaning.strip()
        if not term or not meaning:
            raise ValueError("Term and meaning are required")
        if level is not None and not settings.review.min_level <= level <= settings.review.max_level:
            raise ValueError(
                f"Level must be between {settings.review.min_level} and {settings.review.max_level}"
            )
        if now is None:
            now = now_ms()

        try:
            existing = (
                self.db.query(WordEntry.id)
                .filter(func.lower(WordEntry.term) == term.lower())
                .first()
            )
            if existing:
                raise DuplicateWord(term)

            word = WordEntry(
                term=term,
                meaning=meaning,
                meaning_en=meaning_en,
                example=example,
                part_of_speech=part_of_speech,
                level=level,
                notes=notes,
                created_at=now,
                updated_at=now,
            )
            state = SchedulingState.initial(now)
            record = SrsStateRecord()
            state.apply_to(record)
            word.srs_state = record
            self.db.add(word)
            self.db.commit()
            self.db.refresh(word)
        except SQLAlchemyError as e:
            raise self._fail("add_word", e) from e

        monitoring.words_added.inc()
        logger.info(f"Added word {word.id} ({term!r})")
        return word

    def get_word(self, word_id: str) -> Optional[WordEntry]:
        """Get a word by its ID."""
        try:
            return self.db.query(WordEntry).filter(WordEntry.id == word_id).first()
        except SQLAlchemyError as e:
            raise self._fail("get_word", e) from e

    def list_words(self, query: Optional[str] = None) -> List[WordEntry]:
        """List words, most recently updated first, optionally filtered by term or meaning."""
        query = (query or "").strip()
        try:
            words = self.db.query(WordEntry)
            if query:
                words = words.filter(
                    or_(
                        WordEntry.term.ilike(f"%{query}%"),
                        WordEntry.meaning.ilike(f"%{query}%"),
                    )
                )
            return words.order_by(WordEntry.updated_at.desc()).all()
        except SQLAlchemyError as e:
            raise self._fail("list_words", e) from e

    def delete_word(self, word_id: str) -> bool:
        """Delete a word with its scheduling state and review history."""
        try:
            word = self.db.query(WordEntry).filter(WordEntry.id == word_id).first()
            if not word:
                return False
            self.db.delete(word)
            self.db.commit()
        except SQLAlchemyError as e:
            raise self._fail("delete_word", e) from e

        monitoring.words_deleted.inc()
        logger.info(f"Deleted word {word_id}")
        return True

    def find_due(self, limit: Optional[int] = None, now: Optional[int] = None) -> List[ScheduledWord]:
        """Get words whose due time has arrived, earliest first."""
        if now is None:
            now = now_ms()
        try:
            query = (
                self._scheduled_query()
                .filter(SrsStateRecord.due_at <= now)
                .order_by(SrsStateRecord.due_at.asc())
            )
            if limit is not None:
                query = query.limit(limit)
            return self._to_scheduled(query.all())
        except SQLAlchemyError as e:
            raise self._fail("find_due", e) from e

    def find_by_level_range(
        self, min_level: int, max_level: int, limit: Optional[int] = None
    ) -> List[ScheduledWord]:
        """Get words whose level is within [min_level, max_level], earliest due first."""
        try:
            query = (
                self._scheduled_query()
                .filter(WordEntry.level.between(min_level, max_level))
                .order_by(SrsStateRecord.due_at.asc())
            )
            if limit is not None:
                query = query.limit(limit)
            return self._to_scheduled(query.all())
        except SQLAlchemyError as e:
            raise self._fail("find_by_level_range", e) from e

    def find_by_ids(self, ids: Iterable[str]) -> List[ScheduledWord]:
        """Get the words with the given ids that still exist, earliest due first."""
        ids = list(ids)
        if not ids:
            return []
        try:
            rows = (
                self._scheduled_query()
                .filter(WordEntry.id.in_(ids))
                .order_by(SrsStateRecord.due_at.asc())
                .all()
            )
            return self._to_scheduled(rows)
        except SQLAlchemyError as e:
            raise self._fail("find_by_ids", e) from e

    def sample_random(self, count: int, exclude_id: Optional[str] = None) -> List[WordEntry]:
        """Get up to ``count`` random words, never the one with ``exclude_id``."""
        if count <= 0:
            return []
        try:
            query = self.db.query(WordEntry)
            if exclude_id is not None:
                query = query.filter(WordEntry.id != exclude_id)
            return query.order_by(func.random()).limit(count).all()
        except SQLAlchemyError as e:
            raise self._fail("sample_random", e) from e

    def apply_grade(
        self,
        word_id: str,
        grade: Union[Grade, int],
        direction: Union[Direction, str] = Direction.EN_TO_TR,
        now: Optional[int] = None,
    ) -> SchedulingState:
        """Grade a review: update the scheduling state and append to the review log.

        Both writes happen in one transaction against the state read here.

        Raises:
            InvalidGrade: If ``grade`` is not 0, 3 or 5.
            NotFound: If the word has no scheduling state.
            StorageFailure: If the database call fails.
        """
        grade = Grade.parse(grade)
        direction = Direction(direction)
        if now is None:
            now = now_ms()
        try:
            record = (
                self.db.query(SrsStateRecord)
                .filter(SrsStateRecord.word_entry_id == word_id)
                .first()
            )
            if not record:
                raise NotFound(word_id)

            new_state = srs.update(SchedulingState.from_record(record), grade, now)
            new_state.apply_to(record)
            self.db.add(
                ReviewLog(
                    word_entry_id=word_id,
                    direction=direction.value,
                    grade=int(grade),
                    reviewed_at=now,
                )
            )
            self.db.commit()
        except SQLAlchemyError as e:
            raise self._fail("apply_grade", e) from e

        logger.info(
            f"Graded word {word_id} as {grade.name}: next due in {new_state.interval_days} day(s)"
        )
        return new_state

    def get_review_log(self, word_id: str) -> List[ReviewLogRecord]:
        """Get the review history of a word, oldest first."""
        try:
            rows = (
                self.db.query(ReviewLog)
                .filter(ReviewLog.word_entry_id == word_id)
                .order_by(ReviewLog.id.asc())
                .all()
            )
        except SQLAlchemyError as e:
            raise self._fail("get_review_log", e) from e
        return [
            ReviewLogRecord(
                word_id=row.word_entry_id,
                grade=Grade(row.grade),
                direction=Direction(row.direction),
                reviewed_at=row.reviewed_at,
            )
            for row in rows
        ]

    def get_word_count(self) -> int:
        """Get the count of words in the database."""
        try:
            return self.db.query(WordEntry).count()
        except SQLAlchemyError as e:
            raise self._fail("get_word_count", e) from e
