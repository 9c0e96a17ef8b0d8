"""Tests for word service."""
from unittest.mock import patch

import pytest
from faker import Faker
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session

from wordloop.errors import DuplicateWord, InvalidGrade, NotFound, StorageFailure
from wordloop.models.models import ReviewLog, SrsStateRecord, WordEntry
from wordloop.models.srs_models import Direction, Grade
from wordloop.services.srs import DAY_MS
from wordloop.services.word_service import WordService

fake = Faker()

NOW = 1_700_000_000_000


@pytest.fixture
def word_service(db: Session) -> WordService:
    """Create a word service instance."""
    return WordService(db)


def add_words(word_service: WordService, count: int, **kwargs):
    """Add ``count`` words with unique fake terms."""
    return [
        word_service.add_word(f"{fake.unique.word()}-{i}", fake.word(), **kwargs)
        for i in range(count)
    ]


def set_due(db: Session, word_id: str, due_at: int) -> None:
    record = db.query(SrsStateRecord).filter(SrsStateRecord.word_entry_id == word_id).one()
    record.due_at = due_at
    db.commit()


def test_add_word_creates_initial_state(word_service: WordService, db: Session) -> None:
    """Test that a new word starts with ease 2.5 and is due at creation."""
    word = word_service.add_word("apple", "elma", level=1, now=NOW)

    assert word.id
    assert word.term == "apple"
    assert word.meaning == "elma"
    assert word.created_at == NOW

    record = db.query(SrsStateRecord).filter(SrsStateRecord.word_entry_id == word.id).one()
    assert record.ease == 2.5
    assert record.interval_days == 0
    assert record.repetitions == 0
    assert record.lapses == 0
    assert record.due_at == NOW
    assert record.last_reviewed_at is None


def test_add_word_strips_and_requires_fields(word_service: WordService) -> None:
    """Test that surrounding whitespace is removed and empty fields are rejected."""
    word = word_service.add_word("  house ", " ev ")
    assert (word.term, word.meaning) == ("house", "ev")

    with pytest.raises(ValueError):
        word_service.add_word("   ", "something")
    with pytest.raises(ValueError):
        word_service.add_word("book", "")


def test_add_word_level_bounds(word_service: WordService) -> None:
    """Test that levels must lie within the configured range."""
    assert word_service.add_word("one", "bir", level=1).level == 1
    assert word_service.add_word("five", "beş", level=5).level == 5
    for level in (0, 6):
        with pytest.raises(ValueError):
            word_service.add_word(f"word {level}", "kelime", level=level)
    assert word_service.get_word_count() == 2


def test_add_duplicate_word(word_service: WordService) -> None:
    """Test that the same term cannot be added twice, ignoring case."""
    word_service.add_word("Apple", "elma")
    with pytest.raises(DuplicateWord):
        word_service.add_word("apple", "elma")
    assert word_service.get_word_count() == 1


def test_get_word(word_service: WordService) -> None:
    """Test getting a word by id."""
    word = word_service.add_word("cat", "kedi")
    assert word_service.get_word(word.id).term == "cat"
    assert word_service.get_word(fake.uuid4()) is None


def test_list_and_search_words(word_service: WordService) -> None:
    """Test listing words newest first and searching by term or meaning."""
    word_service.add_word("apple", "elma", now=NOW)
    word_service.add_word("pineapple", "ananas", now=NOW + 1)
    word_service.add_word("dog", "köpek", now=NOW + 2)

    assert [w.term for w in word_service.list_words()] == ["dog", "pineapple", "apple"]
    assert [w.term for w in word_service.list_words("APPLE")] == ["pineapple", "apple"]
    assert [w.term for w in word_service.list_words("ana")] == ["pineapple"]
    assert word_service.list_words("zebra") == []


def test_delete_word_removes_state_and_log(word_service: WordService, db: Session) -> None:
    """Test that deleting a word takes its scheduling state and review log with it."""
    word = word_service.add_word("tree", "ağaç")
    word_service.apply_grade(word.id, Grade.FAIL, now=NOW)

    assert word_service.delete_word(word.id) is True
    assert db.query(WordEntry).count() == 0
    assert db.query(SrsStateRecord).count() == 0
    assert db.query(ReviewLog).count() == 0
    assert word_service.delete_word(word.id) is False


def test_find_due_orders_by_due_time(word_service: WordService, db: Session) -> None:
    """Test that only due words are returned, earliest due first."""
    first, second, later = add_words(word_service, 3, now=NOW)
    set_due(db, first.id, NOW - 100)
    set_due(db, second.id, NOW - 500)
    set_due(db, later.id, NOW + DAY_MS)

    due = word_service.find_due(now=NOW)
    assert [item.id for item in due] == [second.id, first.id]
    assert due[0].state.due_at == NOW - 500
    assert [item.id for item in word_service.find_due(limit=1, now=NOW)] == [second.id]


def test_find_due_includes_words_due_exactly_now(word_service: WordService) -> None:
    """Test that a word due at this instant qualifies."""
    word = word_service.add_word("sun", "güneş", now=NOW)
    assert [item.id for item in word_service.find_due(now=NOW)] == [word.id]
    assert word_service.find_due(now=NOW - 1) == []


def test_find_by_level_range(word_service: WordService, db: Session) -> None:
    """Test filtering by level whether due or not."""
    easy = word_service.add_word("red", "kırmızı", level=1, now=NOW)
    medium = word_service.add_word("although", "rağmen", level=3, now=NOW)
    hard = word_service.add_word("ubiquitous", "her yerde", level=5, now=NOW)
    word_service.add_word("blue", "mavi", now=NOW)
    set_due(db, medium.id, NOW + 10 * DAY_MS)

    assert [item.id for item in word_service.find_by_level_range(1, 3)] == [easy.id, medium.id]
    assert [item.id for item in word_service.find_by_level_range(5, 5)] == [hard.id]
    assert len(word_service.find_by_level_range(1, 5, limit=2)) == 2


def test_find_by_ids_skips_missing(word_service: WordService) -> None:
    """Test that unknown ids are silently skipped."""
    words = add_words(word_service, 2)
    found = word_service.find_by_ids([words[0].id, fake.uuid4(), words[1].id])
    assert {item.id for item in found} == {words[0].id, words[1].id}
    assert word_service.find_by_ids([]) == []


def test_sample_random_excludes_word(word_service: WordService) -> None:
    """Test that sampling never returns the excluded word."""
    words = add_words(word_service, 5)
    for _ in range(10):
        sample = word_service.sample_random(3, exclude_id=words[0].id)
        assert len(sample) == 3
        assert words[0].id not in {w.id for w in sample}
        assert len({w.id for w in sample}) == 3

    assert len(word_service.sample_random(10, exclude_id=words[0].id)) == 4
    assert word_service.sample_random(0) == []


def test_apply_grade_fail_end_to_end(word_service: WordService) -> None:
    """Test failing a new word: lower ease, one lapse, due tomorrow, logged."""
    word = word_service.add_word("apple", "elma", now=NOW)
    state = word_service.apply_grade(word.id, 0, "EN->TR", now=NOW)

    assert state.ease == pytest.approx(2.3)
    assert state.interval_days == 1
    assert state.repetitions == 0
    assert state.lapses == 1
    assert state.due_at == NOW + 86_400_000

    stored = word_service.find_by_ids([word.id])[0].state
    assert stored == state

    log = word_service.get_review_log(word.id)
    assert len(log) == 1
    assert log[0].grade is Grade.FAIL
    assert log[0].direction is Direction.EN_TO_TR
    assert log[0].reviewed_at == NOW


def test_apply_grade_appends_to_log(word_service: WordService) -> None:
    """Test that every grade appends one log entry in order."""
    word = word_service.add_word("river", "nehir", now=NOW)
    word_service.apply_grade(word.id, Grade.EASY, now=NOW)
    word_service.apply_grade(word.id, Grade.HARD, Direction.TR_TO_EN, now=NOW + DAY_MS)

    log = word_service.get_review_log(word.id)
    assert [entry.grade for entry in log] == [Grade.EASY, Grade.HARD]
    assert [entry.direction for entry in log] == [Direction.EN_TO_TR, Direction.TR_TO_EN]


def test_apply_grade_unknown_word(word_service: WordService) -> None:
    """Test that grading a word without scheduling state raises NotFound."""
    with pytest.raises(NotFound):
        word_service.apply_grade(fake.uuid4(), Grade.EASY)


def test_apply_grade_invalid_grade(word_service: WordService) -> None:
    """Test that an invalid grade writes nothing."""
    word = word_service.add_word("moon", "ay", now=NOW)
    with pytest.raises(InvalidGrade):
        word_service.apply_grade(word.id, 4, now=NOW)
    assert word_service.get_review_log(word.id) == []
    assert word_service.find_by_ids([word.id])[0].state.repetitions == 0


def test_storage_errors_become_storage_failure(word_service: WordService, db: Session) -> None:
    """Test that database errors surface as StorageFailure and leave data unchanged."""
    word = word_service.add_word("star", "yıldız", now=NOW)
    error = OperationalError("COMMIT", {}, Exception("disk I/O error"))

    with patch.object(db, "commit", side_effect=error):
        with pytest.raises(StorageFailure) as excinfo:
            word_service.apply_grade(word.id, Grade.FAIL, now=NOW)
    assert excinfo.value.operation == "apply_grade"

    assert word_service.get_review_log(word.id) == []
    assert word_service.find_by_ids([word.id])[0].state.lapses == 0


def test_get_word_count(word_service: WordService) -> None:
    """Test counting words."""
    assert word_service.get_word_count() == 0
    add_words(word_service, 3)
    assert word_service.get_word_count() == 3


if __name__ == "__main__":
    pytest.main([__file__])
