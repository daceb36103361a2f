# gallery/store.py
"""
Keyed storage for pictures.

The registry talks to storage through the PictureStore interface, so an
in-memory store and a persistent store satisfy the same contract:

    next_id()        -> fresh id, never handed out twice
    insert(picture)  -> add a new record (id must not exist)
    get(id)          -> snapshot or None
    put(picture)     -> replace an existing record
    lock(id)         -> per-key lock held across read-check-commit
    list()           -> all records in id order
"""

import logging
import threading
from abc import ABC, abstractmethod
from contextlib import contextmanager
from pathlib import Path
from typing import Dict, Iterator, List, Optional

from .errors import DuplicateAsset, NoSuchAsset
from .persistence import CorruptIndex, load_index, save_index
from .picture import Picture

logger = logging.getLogger(__name__)


class PictureStore(ABC):
    """
    Base class for picture stores.

    Subclasses implement the record operations; per-key locking is
    provided here.
    """

    def __init__(self):
        self._guard = threading.RLock()
        self._key_locks: Dict[int, threading.RLock] = {}

    @contextmanager
    def lock(self, picture_id: int) -> Iterator[None]:
        """Serialize mutations of a single picture."""
        with self._guard:
            key_lock = self._key_locks.setdefault(picture_id, threading.RLock())
        with key_lock:
            yield

    @abstractmethod
    def next_id(self) -> int:
        """Allocate a fresh picture id."""
        pass

    @abstractmethod
    def insert(self, picture: Picture) -> None:
        """Add a new picture. Raises DuplicateAsset if the id exists."""
        pass

    @abstractmethod
    def get(self, picture_id: int) -> Optional[Picture]:
        """Get a picture snapshot by id."""
        pass

    @abstractmethod
    def put(self, picture: Picture) -> None:
        """Replace an existing picture. Raises NoSuchAsset if absent."""
        pass

    @abstractmethod
    def list(self) -> List[Picture]:
        """List all pictures in id order."""
        pass

    def __contains__(self, picture_id: int) -> bool:
        return self.get(picture_id) is not None

    def __len__(self) -> int:
        return len(self.list())


class MemoryStore(PictureStore):
    """Picture store held in process memory."""

    def __init__(self):
        super().__init__()
        self._pictures: Dict[int, Picture] = {}
        self._next_id = 0

    def next_id(self) -> int:
        with self._guard:
            picture_id = self._next_id
            self._next_id += 1
            self._commit()
            return picture_id

    def insert(self, picture: Picture) -> None:
        with self._guard:
            if picture.id in self._pictures:
                raise DuplicateAsset(f"Picture {picture.id} already exists")
            self._pictures[picture.id] = picture
            try:
                self._commit()
            except BaseException:
                del self._pictures[picture.id]
                raise
        logger.debug(f"Inserted picture {picture.id}")

    def get(self, picture_id: int) -> Optional[Picture]:
        return self._pictures.get(picture_id)

    def put(self, picture: Picture) -> None:
        with self._guard:
            previous = self._pictures.get(picture.id)
            if previous is None:
                raise NoSuchAsset(picture.id)
            self._pictures[picture.id] = picture
            try:
                self._commit()
            except BaseException:
                self._pictures[picture.id] = previous
                raise
        logger.debug(f"Updated picture {picture.id}")

    def list(self) -> List[Picture]:
        with self._guard:
            return [self._pictures[k] for k in sorted(self._pictures)]

    def __len__(self) -> int:
        return len(self._pictures)

    def _commit(self) -> None:
        """Persist the current state. Nothing to do in memory."""


class JsonStore(MemoryStore):
    """
    Picture store persisted to a JSON index.

    Structure:
        store_dir/
            pictures.json     # {"next_id": n, "pictures": {id: record}}

    The id counter is persisted alongside the records so ids are never
    reused across restarts.
    """

    def __init__(self, store_dir: Path | str):
        super().__init__()
        self.store_dir = Path(store_dir)
        self.store_dir.mkdir(parents=True, exist_ok=True)
        self._load()

    def _index_path(self) -> Path:
        return self.store_dir / "pictures.json"

    def _load(self):
        """Load pictures from disk."""
        data = load_index(self._index_path())
        if data is None:
            return
        try:
            pictures = {
                int(picture_id): Picture.from_dict(record)
                for picture_id, record in data.get("pictures", {}).items()
            }
            stored_next_id = int(data.get("next_id", 0))
        except (AttributeError, KeyError, TypeError, ValueError) as e:
            raise CorruptIndex(self._index_path(), e) from None
        self._pictures = pictures
        highest = max(pictures, default=-1)
        self._next_id = max(stored_next_id, highest + 1)
        logger.debug(f"Loaded {len(pictures)} pictures from {self.store_dir}")

    def _commit(self) -> None:
        save_index(self._index_path(), {
            "next_id": self._next_id,
            "pictures": {
                str(picture_id): picture.to_dict()
                for picture_id, picture in sorted(self._pictures.items())
            },
        })
