"""Database models for wordloop."""
import uuid

from sqlalchemy import (
    BigInteger,
    Column,
    Float,
    ForeignKey,
    Integer,
    String,
    Text,
)
from sqlalchemy.orm import relationship

from wordloop.models.base import Base, TimestampMixin, now_ms


def new_word_id() -> str:
    """Generate a new word id."""
    return str(uuid.uuid4())


class WordEntry(Base, TimestampMixin):
    """Vocabulary word model."""

    __tablename__ = "word_entries"

    id = Column(String(36), primary_key=True, default=new_word_id)
    term = Column(String, nullable=False, index=True)
    meaning = Column(String, nullable=False)  # target-language meaning
    meaning_en = Column(String)
    example = Column(String)
    part_of_speech = Column(String)
    level = Column(Integer)  # static difficulty, 1 (easy) to 5 (hard)
    notes = Column(Text)

    # Relationships
    srs_state = relationship(
        "SrsStateRecord",
        back_populates="word",
        uselist=False,
        cascade="all, delete-orphan",
    )
    review_logs = relationship(
        "ReviewLog",
        back_populates="word",
        cascade="all, delete-orphan",
        order_by="ReviewLog.id",
    )

    def __repr__(self) -> str:
        return f"<WordEntry {self.id} {self.term!r}>"


class SrsStateRecord(Base):
    """Scheduling state of a word, one row per word."""

    __tablename__ = "srs_state"

    word_entry_id = Column(
        String(36), ForeignKey("word_entries.id", ondelete="CASCADE"), primary_key=True
    )
    ease = Column(Float, nullable=False, default=2.5)
    interval_days = Column(Integer, nullable=False, default=0)
    repetitions = Column(Integer, nullable=False, default=0)
    lapses = Column(Integer, nullable=False, default=0)
    due_at = Column(BigInteger, nullable=False, default=now_ms, index=True)
    last_reviewed_at = Column(BigInteger, nullable=True)

    # Relationships
    word = relationship("WordEntry", back_populates="srs_state")


class ReviewLog(Base):
    """Append-only record of a graded review."""

    __tablename__ = "review_log"

    id = Column(Integer, primary_key=True, autoincrement=True)
    word_entry_id = Column(
        String(36), ForeignKey("word_entries.id", ondelete="CASCADE"), nullable=False, index=True
    )
    direction = Column(String, nullable=False)  # EN->TR or TR->EN
    grade = Column(Integer, nullable=False)  # 0, 3 or 5
    reviewed_at = Column(BigInteger, nullable=False)

    # Relationships
    word = relationship("WordEntry", back_populates="review_logs")


class KeyValueEntry(Base):
    """Engine-owned key-value state, such as the reinforcement list."""

    __tablename__ = "key_value_store"

    key = Column(String, primary_key=True)
    value = Column(Text, nullable=False)
    updated_at = Column(BigInteger, default=now_ms, onupdate=now_ms, nullable=False)
