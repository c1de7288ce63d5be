"""
Contact Store

Owns the canonical contact record, persists it to a host key-value store
and notifies observers on every change. All writers go through set(),
edit() or reset(); channels never assign the record directly.
"""

import json
import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Callable, Dict, List, Mapping, Optional, Union

from .errors import PersistenceError
from .merger import merge, overwrite
from .record import ContactRecord, EMPTY_RECORD

logger = logging.getLogger(__name__)

# Key under which the serialized record is persisted
RECORD_KEY = "contact-record-v1"

Observer = Callable[[ContactRecord], None]


class KeyValueStorage(ABC):
    """Durable string key-value store provided by the host."""

    @abstractmethod
    def get_item(self, key: str) -> Optional[str]:
        pass

    @abstractmethod
    def set_item(self, key: str, value: str) -> None:
        pass

    @abstractmethod
    def remove_item(self, key: str) -> None:
        pass


class MemoryStorage(KeyValueStorage):
    """Volatile storage, used when no durable store is configured."""

    def __init__(self):
        self.items: Dict[str, str] = {}

    def get_item(self, key: str) -> Optional[str]:
        return self.items.get(key)

    def set_item(self, key: str, value: str) -> None:
        self.items[key] = value

    def remove_item(self, key: str) -> None:
        self.items.pop(key, None)


class JsonFileStorage(KeyValueStorage):
    """
    Key-value storage backed by a single JSON object on disk.

    Raises PersistenceError on any read/write failure.
    """

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)

    def _read(self) -> Dict[str, str]:
        if not self.path.exists():
            return {}
        try:
            with open(self.path, 'r', encoding='utf-8') as f:
                data = json.load(f)
        except (ValueError, OSError) as e:
            raise PersistenceError(f"Failed to read {self.path}: {e}") from e
        if not isinstance(data, dict):
            raise PersistenceError(f"Unexpected content in {self.path}")
        return data

    def _write(self, data: Dict[str, str]) -> None:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.path, 'w', encoding='utf-8') as f:
                json.dump(data, f, indent=2, ensure_ascii=False)
        except OSError as e:
            raise PersistenceError(f"Failed to write {self.path}: {e}") from e

    def get_item(self, key: str) -> Optional[str]:
        value = self._read().get(key)
        return value if isinstance(value, str) else None

    def set_item(self, key: str, value: str) -> None:
        data = self._read()
        data[key] = value
        self._write(data)

    def remove_item(self, key: str) -> None:
        data = self._read()
        if key in data:
            del data[key]
            self._write(data)


class ContactStore:
    """
    Single owner of the contact record being assembled.

    Example:
        store = ContactStore(JsonFileStorage("contact_store.json"))
        store.load()
        unsubscribe = store.subscribe(render)
        store.set({"name": "Jane Doe"})
        unsubscribe()
    """

    def __init__(self, storage: Optional[KeyValueStorage] = None, key: str = RECORD_KEY):
        self._storage = storage if storage is not None else MemoryStorage()
        self._key = key
        self._record = EMPTY_RECORD
        self._observers: List[Observer] = []

    def get(self) -> ContactRecord:
        """Current record snapshot."""
        return self._record

    def set(self, patch: Mapping[str, str]) -> ContactRecord:
        """Merge a channel patch into the record, persist and notify."""
        return self._commit(merge(self._record, patch))

    def edit(self, patch: Mapping[str, str]) -> ContactRecord:
        """Apply an explicit manual edit (overwrites the given fields)."""
        return self._commit(overwrite(self._record, patch))

    def reset(self) -> ContactRecord:
        """Replace the record with the empty one and clear the persisted copy."""
        self._record = EMPTY_RECORD
        try:
            self._storage.remove_item(self._key)
        except PersistenceError as e:
            logger.warning(f"Failed to clear persisted record: {e}")
        logger.info("Contact record reset")
        self._notify()
        return self._record

    def load(self) -> ContactRecord:
        """Hydrate the record from storage, merged onto the empty record."""
        try:
            raw = self._storage.get_item(self._key)
        except PersistenceError as e:
            logger.warning(f"Failed to load persisted record: {e}")
            return self._record

        if not raw:
            logger.debug("No persisted record found")
            return self._record

        try:
            data = json.loads(raw)
        except json.JSONDecodeError as e:
            logger.warning(f"Ignoring corrupt persisted record: {e}")
            return self._record

        if isinstance(data, dict):
            self._record = ContactRecord.from_dict(data)
            logger.debug(f"Record loaded: {self._record}")
        return self._record

    def subscribe(self, observer: Observer) -> Callable[[], None]:
        """
        Register an observer called with every new snapshot.

        Returns:
            Function that removes the observer
        """
        self._observers.append(observer)

        def unsubscribe() -> None:
            if observer in self._observers:
                self._observers.remove(observer)

        return unsubscribe

    def _commit(self, record: ContactRecord) -> ContactRecord:
        self._record = record
        self._persist()
        self._notify()
        return record

    def _persist(self) -> None:
        try:
            self._storage.set_item(self._key, json.dumps(self._record.to_dict(), ensure_ascii=False))
        except PersistenceError as e:
            logger.warning(f"Failed to persist record: {e}")

    def _notify(self) -> None:
        snapshot = self._record
        for observer in list(self._observers):
            try:
                observer(snapshot)
            except Exception:
                logger.exception("Error in contact observer")
