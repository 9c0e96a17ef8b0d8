"""Key-value storage for engine-owned state."""
import logging
from abc import ABC, abstractmethod
from typing import Dict, Iterable, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from wordloop import monitoring
from wordloop.errors import StorageFailure
from wordloop.models.models import KeyValueEntry

logger = logging.getLogger(__name__)


class KeyValueStore(ABC):
    """String key-value storage. Writes of several keys land together or not at all."""

    @abstractmethod
    def get(self, key: str) -> Optional[str]:
        """Get the value stored under ``key``, or None."""
        raise NotImplementedError("Subclasses must implement this method")

    @abstractmethod
    def set_many(self, values: Dict[str, str], delete: Iterable[str] = ()) -> None:
        """Write ``values`` and remove the ``delete`` keys as a single unit."""
        raise NotImplementedError("Subclasses must implement this method")


class InMemoryKeyValueStore(KeyValueStore):
    """Dictionary-backed store."""

    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self.data: Dict[str, str] = dict(initial or {})

    def get(self, key: str) -> Optional[str]:
        return self.data.get(key)

    def set_many(self, values: Dict[str, str], delete: Iterable[str] = ()) -> None:
        self.data.update(values)
        for key in delete:
            self.data.pop(key, None)


class SqlKeyValueStore(KeyValueStore):
    """Store backed by the key_value_store table."""

    def __init__(self, db: Session):
        """Initialize the store with a database session."""
        self.db = db

    def get(self, key: str) -> Optional[str]:
        try:
            entry = self.db.query(KeyValueEntry).filter(KeyValueEntry.key == key).first()
        except SQLAlchemyError as e:
            self.db.rollback()
            monitoring.storage_errors.labels(operation="kv_get").inc()
            logger.error(f"Reading key {key} failed: {e}")
            raise StorageFailure("kv_get", e) from e
        return entry.value if entry else None

    def set_many(self, values: Dict[str, str], delete: Iterable[str] = ()) -> None:
        delete = list(delete)
        try:
            for key, value in values.items():
                self.db.merge(KeyValueEntry(key=key, value=value))
            for key in delete:
                self.db.query(KeyValueEntry).filter(KeyValueEntry.key == key).delete()
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            monitoring.storage_errors.labels(operation="kv_set_many").inc()
            logger.error(f"Writing keys {sorted(values)} failed: {e}")
            raise StorageFailure("kv_set_many", e) from e
        logger.debug(f"Stored keys {sorted(values)}, deleted {list(delete)}")
