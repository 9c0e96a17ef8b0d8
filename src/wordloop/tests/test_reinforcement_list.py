"""Tests for the reinforcement list."""
import json
from unittest.mock import Mock

import pytest
from faker import Faker
from sqlalchemy.orm import Session

from wordloop.errors import StorageFailure
from wordloop.models.reinforcement_models import AnswerOutcome
from wordloop.services.kv_store import InMemoryKeyValueStore, SqlKeyValueStore
from wordloop.services.reinforcement_list import (
    IDS_KEY,
    LEGACY_UNLEARNED_KEY,
    PROGRESS_KEY,
    ReinforcementList,
)

fake = Faker()


@pytest.fixture
def store() -> InMemoryKeyValueStore:
    """Empty in-memory store."""
    return InMemoryKeyValueStore()


@pytest.fixture
def reinforcement_list(store: InMemoryKeyValueStore) -> ReinforcementList:
    """Loaded list over an empty store, requiring three correct answers."""
    items = ReinforcementList(store, required_streak=3)
    items.load()
    return items


def stored_ids(store: InMemoryKeyValueStore):
    return json.loads(store.data[IDS_KEY])


def stored_progress(store: InMemoryKeyValueStore):
    return json.loads(store.data[PROGRESS_KEY])


def test_load_empty_store(reinforcement_list: ReinforcementList, store: InMemoryKeyValueStore) -> None:
    """An empty store gives an empty list and writes nothing."""
    assert reinforcement_list.ids == []
    assert len(reinforcement_list) == 0
    assert store.data == {}


def test_enqueue_adds_with_zero_streak(
    reinforcement_list: ReinforcementList, store: InMemoryKeyValueStore
) -> None:
    """Enqueued words start at streak 0 and are persisted."""
    word_id = fake.uuid4()
    assert reinforcement_list.enqueue(word_id) is True
    assert word_id in reinforcement_list
    assert reinforcement_list.streak(word_id) == 0
    assert stored_ids(store) == [word_id]
    assert stored_progress(store) == {word_id: 0}


def test_enqueue_existing_keeps_streak(reinforcement_list: ReinforcementList) -> None:
    """Enqueueing a word that is already listed is a no-op."""
    word_id = fake.uuid4()
    reinforcement_list.enqueue(word_id)
    reinforcement_list.record_answer(word_id, True)

    assert reinforcement_list.enqueue(word_id) is False
    assert reinforcement_list.streak(word_id) == 1
    assert reinforcement_list.ids == [word_id]


def test_three_correct_answers_graduate(
    reinforcement_list: ReinforcementList, store: InMemoryKeyValueStore
) -> None:
    """A word leaves the list on its third correct answer in a row."""
    word_id = fake.uuid4()
    reinforcement_list.enqueue(word_id)

    first = reinforcement_list.record_answer(word_id, True)
    second = reinforcement_list.record_answer(word_id, True)
    assert (first.outcome, first.streak) == (AnswerOutcome.PROGRESSED, 1)
    assert (second.outcome, second.streak) == (AnswerOutcome.PROGRESSED, 2)

    third = reinforcement_list.record_answer(word_id, True)
    assert third.outcome is AnswerOutcome.GRADUATED
    assert word_id not in reinforcement_list
    assert stored_ids(store) == []
    assert stored_progress(store) == {}


def test_wrong_answer_resets_streak(reinforcement_list: ReinforcementList) -> None:
    """An incorrect answer puts the streak back to zero but keeps the word."""
    word_id = fake.uuid4()
    reinforcement_list.enqueue(word_id)
    reinforcement_list.record_answer(word_id, True)
    reinforcement_list.record_answer(word_id, True)

    result = reinforcement_list.record_answer(word_id, False)
    assert result.outcome is AnswerOutcome.RESET
    assert not result.outcome.is_positive
    assert reinforcement_list.streak(word_id) == 0
    assert word_id in reinforcement_list

    for _ in range(2):
        reinforcement_list.record_answer(word_id, True)
    assert word_id in reinforcement_list
    assert reinforcement_list.record_answer(word_id, True).outcome is AnswerOutcome.GRADUATED


def test_record_answer_unknown_word(reinforcement_list: ReinforcementList) -> None:
    """Answers for words that are not listed are rejected."""
    with pytest.raises(KeyError):
        reinforcement_list.record_answer(fake.uuid4(), True)


def test_ids_and_progress_stay_in_sync(
    reinforcement_list: ReinforcementList, store: InMemoryKeyValueStore
) -> None:
    """Every stored id has a progress entry and nothing else does."""
    ids = [fake.uuid4() for _ in range(4)]
    for word_id in ids:
        reinforcement_list.enqueue(word_id)
    reinforcement_list.record_answer(ids[0], True)
    reinforcement_list.record_answer(ids[1], False)
    for _ in range(3):
        reinforcement_list.record_answer(ids[2], True)

    assert set(stored_ids(store)) == set(stored_progress(store))
    assert set(stored_ids(store)) == {ids[0], ids[1], ids[3]}
    assert all(0 <= streak < 3 for streak in stored_progress(store).values())


def test_ids_and_progress_written_in_one_call() -> None:
    """Both keys go to the store together."""
    store = Mock()
    store.get.return_value = None
    items = ReinforcementList(store, required_streak=3)
    items.load()
    items.enqueue("word-1")

    store.set_many.assert_called_once()
    values = store.set_many.call_args.args[0]
    assert set(values) == {IDS_KEY, PROGRESS_KEY}


def test_failed_write_leaves_list_unchanged() -> None:
    """When the store rejects a write, memory keeps its previous state."""
    store = InMemoryKeyValueStore()
    items = ReinforcementList(store, required_streak=3)
    items.load()
    items.enqueue("word-1")
    items.record_answer("word-1", True)
    snapshot = dict(store.data)

    store.set_many = Mock(side_effect=StorageFailure("kv_set_many"))
    with pytest.raises(StorageFailure):
        items.record_answer("word-1", True)
    with pytest.raises(StorageFailure):
        items.enqueue("word-2")

    assert items.progress == {"word-1": 1}
    assert store.data == snapshot


def test_load_merges_legacy_ids() -> None:
    """Legacy unlearned ids are folded in once and the legacy key is removed."""
    store = InMemoryKeyValueStore({
        IDS_KEY: json.dumps(["a", "b"]),
        PROGRESS_KEY: json.dumps({"a": 2, "b": 0}),
        LEGACY_UNLEARNED_KEY: json.dumps(["b", "c"]),
    })
    items = ReinforcementList(store, required_streak=3)

    assert items.load() == ["a", "b", "c"]
    assert items.progress == {"a": 2, "b": 0, "c": 0}
    assert LEGACY_UNLEARNED_KEY not in store.data
    assert stored_ids(store) == ["a", "b", "c"]

    # A second load finds nothing left to merge
    assert ReinforcementList(store, required_streak=3).load() == ["a", "b", "c"]


def test_load_reads_earlier_review_screen_key() -> None:
    """Test that ids saved by the earlier review screen under its own key are picked up."""
    store = InMemoryKeyValueStore({"review.unlearnedIds": json.dumps(["old-1", "old-2"])})
    items = ReinforcementList(store, required_streak=3)

    assert items.load() == ["old-1", "old-2"]
    assert "review.unlearnedIds" not in store.data


def test_load_fills_missing_progress_and_drops_stale_entries() -> None:
    """Ids without progress start at zero; progress without an id is discarded."""
    store = InMemoryKeyValueStore({
        IDS_KEY: json.dumps(["a", "b"]),
        PROGRESS_KEY: json.dumps({"a": 1, "zombie": 2}),
    })
    items = ReinforcementList(store, required_streak=3)
    items.load()

    assert items.progress == {"a": 1, "b": 0}
    assert stored_progress(store) == {"a": 1, "b": 0}


def test_load_tolerates_corrupt_values() -> None:
    """Unreadable or malformed stored values are treated as empty."""
    store = InMemoryKeyValueStore({
        IDS_KEY: "not json",
        PROGRESS_KEY: json.dumps(["wrong", "shape"]),
    })
    items = ReinforcementList(store, required_streak=3)
    assert items.load() == []


def test_load_clamps_out_of_range_streaks() -> None:
    """Stored streaks never reach the graduation threshold."""
    store = InMemoryKeyValueStore({
        IDS_KEY: json.dumps(["a", "b"]),
        PROGRESS_KEY: json.dumps({"a": 7, "b": -1}),
    })
    items = ReinforcementList(store, required_streak=3)
    items.load()
    assert items.progress == {"a": 2, "b": 0}


def test_enqueue_before_load_keeps_stored_entries() -> None:
    """Mutations load the stored list first instead of overwriting it."""
    store = InMemoryKeyValueStore({
        IDS_KEY: json.dumps(["a"]),
        PROGRESS_KEY: json.dumps({"a": 1}),
    })
    items = ReinforcementList(store, required_streak=3)
    items.enqueue("b")
    assert items.progress == {"a": 1, "b": 0}


def test_prune_is_idempotent(
    reinforcement_list: ReinforcementList, store: InMemoryKeyValueStore
) -> None:
    """Pruning removes orphans once and then does nothing."""
    for word_id in ("a", "b", "c"):
        reinforcement_list.enqueue(word_id)

    assert reinforcement_list.prune(["a", "c"]) == ["b"]
    assert reinforcement_list.ids == ["a", "c"]
    assert stored_ids(store) == ["a", "c"]

    store.set_many = Mock(wraps=store.set_many)
    assert reinforcement_list.prune(["a", "c"]) == []
    store.set_many.assert_not_called()


def test_sql_store_round_trip(db: Session) -> None:
    """The SQL-backed store persists the list across instances."""
    items = ReinforcementList(SqlKeyValueStore(db), required_streak=3)
    items.load()
    items.enqueue("a")
    items.enqueue("b")
    items.record_answer("b", True)

    reloaded = ReinforcementList(SqlKeyValueStore(db), required_streak=3)
    assert reloaded.load() == ["a", "b"]
    assert reloaded.progress == {"a": 0, "b": 1}


def test_sql_store_deletes_keys(db: Session) -> None:
    """Deleted keys disappear in the same write."""
    store = SqlKeyValueStore(db)
    store.set_many({"one": "1", "two": "2"})
    store.set_many({"one": "uno"}, delete=["two"])

    assert store.get("one") == "uno"
    assert store.get("two") is None
    assert store.get("missing") is None


def test_sql_store_legacy_migration(db: Session) -> None:
    """Legacy ids stored in the database are merged and removed."""
    store = SqlKeyValueStore(db)
    store.set_many({LEGACY_UNLEARNED_KEY: json.dumps(["x", "y"])})

    items = ReinforcementList(store, required_streak=3)
    assert items.load() == ["x", "y"]
    assert store.get(LEGACY_UNLEARNED_KEY) is None


if __name__ == "__main__":
    pytest.main([__file__])
