"""Reinforcement list: recently missed words and their correct-answer streaks."""
import json
import logging
from typing import Any, Dict, Iterable, List, Optional

from wordloop import monitoring
from wordloop.config import settings
from wordloop.models.reinforcement_models import AnswerOutcome, AnswerResult
from wordloop.services.kv_store import KeyValueStore

logger = logging.getLogger(__name__)

IDS_KEY = "reinforcement.word_ids"
PROGRESS_KEY = "reinforcement.progress"
LEGACY_UNLEARNED_KEY = "review.unlearnedIds"  # written by the earlier review screen


class ReinforcementList:
    """Tracks which words need reinforcement and how far along each one is.

    The id list and the streak map are always written to the store together
    in one call, and memory is only updated once that write went through.
    """

    def __init__(self, store: KeyValueStore, required_streak: Optional[int] = None):
        self.store = store
        self.required_streak = required_streak or settings.reinforcement.required_streak
        self._progress: Dict[str, int] = {}
        self._loaded = False

    def _read_json(self, key: str, default: Any) -> Any:
        raw = self.store.get(key)
        if not raw:
            return default
        try:
            return json.loads(raw)
        except json.JSONDecodeError:
            logger.warning(f"Ignoring unreadable value stored under {key}")
            return default

    def _read_ids(self, key: str) -> List[str]:
        parsed = self._read_json(key, [])
        if not isinstance(parsed, list):
            return []
        return [word_id for word_id in parsed if isinstance(word_id, str)]

    def _read_progress(self) -> Dict[str, int]:
        parsed = self._read_json(PROGRESS_KEY, {})
        if not isinstance(parsed, dict):
            return {}
        progress = {}
        for word_id, streak in parsed.items():
            if isinstance(streak, int) and not isinstance(streak, bool) and streak >= 0:
                progress[word_id] = min(streak, self.required_streak - 1)
        return progress

    def _persist(self, progress: Dict[str, int], delete: Iterable[str] = ()) -> None:
        self.store.set_many(
            {
                IDS_KEY: json.dumps(list(progress)),
                PROGRESS_KEY: json.dumps(progress),
            },
            delete=delete,
        )
        self._progress = progress

    def load(self) -> List[str]:
        """Load the list from the store, folding in the legacy unlearned-ids list."""
        stored_ids = self._read_ids(IDS_KEY)
        has_legacy = self.store.get(LEGACY_UNLEARNED_KEY) is not None
        legacy_ids = self._read_ids(LEGACY_UNLEARNED_KEY) if has_legacy else []
        merged = list(dict.fromkeys(stored_ids + legacy_ids))

        stored_progress = self._read_progress()
        progress = {word_id: stored_progress.get(word_id, 0) for word_id in merged}

        if has_legacy or merged != stored_ids or progress != stored_progress:
            logger.info(
                f"Reconciling reinforcement list: {len(stored_ids)} stored, "
                f"{len(legacy_ids)} legacy, {len(merged)} after merge"
            )
            self._persist(progress, delete=[LEGACY_UNLEARNED_KEY] if has_legacy else ())
        else:
            self._progress = progress
        self._loaded = True
        logger.debug(f"Loaded reinforcement list with {len(self._progress)} words")
        return self.ids

    def _ensure_loaded(self) -> None:
        if not self._loaded:
            self.load()

    @property
    def ids(self) -> List[str]:
        return list(self._progress)

    @property
    def progress(self) -> Dict[str, int]:
        return dict(self._progress)

    def streak(self, word_id: str) -> int:
        """Current streak of a word, 0 if it is not in the list."""
        return self._progress.get(word_id, 0)

    def __contains__(self, word_id: str) -> bool:
        return word_id in self._progress

    def __len__(self) -> int:
        return len(self._progress)

    def enqueue(self, word_id: str) -> bool:
        """Add a word with streak 0. A word already in the list keeps its streak."""
        self._ensure_loaded()
        if word_id in self._progress:
            logger.debug(f"Word {word_id} already in reinforcement list (streak {self._progress[word_id]})")
            return False
        progress = dict(self._progress)
        progress[word_id] = 0
        self._persist(progress)
        monitoring.reinforcement_enqueued.inc()
        logger.info(f"Word {word_id} added to reinforcement list")
        return True

    def record_answer(self, word_id: str, correct: bool) -> AnswerResult:
        """Apply one reinforcement answer to a word's streak.

        Raises:
            KeyError: If the word is not in the list.
        """
        self._ensure_loaded()
        if word_id not in self._progress:
            raise KeyError(word_id)

        progress = dict(self._progress)
        if correct:
            streak = progress[word_id] + 1
            if streak >= self.required_streak:
                del progress[word_id]
                result = AnswerResult(word_id, AnswerOutcome.GRADUATED, 0)
            else:
                progress[word_id] = streak
                result = AnswerResult(word_id, AnswerOutcome.PROGRESSED, streak)
        else:
            progress[word_id] = 0
            result = AnswerResult(word_id, AnswerOutcome.RESET, 0)

        self._persist(progress)
        monitoring.reinforcement_answers.labels(outcome=result.outcome.value).inc()
        if result.outcome is AnswerOutcome.GRADUATED:
            monitoring.words_graduated.inc()
            logger.info(f"Word {word_id} graduated from reinforcement list")
        else:
            logger.debug(f"Word {word_id}: {result.outcome.value}, streak {result.streak}")
        return result

    def prune(self, valid_ids: Iterable[str]) -> List[str]:
        """Drop every entry whose id is not in ``valid_ids``. Returns the dropped ids."""
        self._ensure_loaded()
        valid = set(valid_ids)
        removed = [word_id for word_id in self._progress if word_id not in valid]
        if not removed:
            return []
        progress = {word_id: streak for word_id, streak in self._progress.items() if word_id in valid}
        self._persist(progress)
        logger.debug(f"Pruned {len(removed)} orphaned ids from reinforcement list")
        return removed
