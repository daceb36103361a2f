# gallery/activity.py
"""
Picture activity history.

Every committed operation is recorded as an Activity:
- Create: a picture was minted
- List / Unlist: sale state changed
- Buy: ownership changed against payment
- Tip: value was sent to the creator
- Update: uri and price were edited
- Transfer: ownership was given away

The log is append-only; ``discard`` exists so a failed transaction can
withdraw the entry it just wrote.
"""

import logging
import threading
import time
import uuid
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

from .persistence import load_index, save_index

logger = logging.getLogger(__name__)

ACTIVITY_TYPES = ("Create", "List", "Unlist", "Buy", "Tip", "Update", "Transfer")


def _generate_id() -> str:
    """Generate unique activity ID."""
    return str(uuid.uuid4())


@dataclass
class Activity:
    """
    A recorded operation on a picture.

    Attributes:
        activity_id: Unique identifier
        activity_type: One of ACTIVITY_TYPES
        actor: Identity that performed the operation
        picture_id: Picture the operation applied to
        data: Operation parameters and outcome
        published: ISO timestamp
    """
    activity_id: str
    activity_type: str
    actor: str
    picture_id: int
    data: Dict[str, Any] = field(default_factory=dict)
    published: str = field(default_factory=lambda: time.strftime("%Y-%m-%dT%H:%M:%SZ", time.gmtime()))

    @classmethod
    def record(
        cls,
        activity_type: str,
        actor: str,
        picture_id: int,
        data: Dict[str, Any] = None,
    ) -> "Activity":
        """Create a new activity with a fresh id."""
        if activity_type not in ACTIVITY_TYPES:
            raise ValueError(f"Unknown activity type: {activity_type}")
        return cls(
            activity_id=_generate_id(),
            activity_type=activity_type,
            actor=actor,
            picture_id=picture_id,
            data=data or {},
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "activity_id": self.activity_id,
            "activity_type": self.activity_type,
            "actor": self.actor,
            "picture_id": self.picture_id,
            "data": self.data,
            "published": self.published,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Activity":
        return cls(
            activity_id=data["activity_id"],
            activity_type=data["activity_type"],
            actor=data["actor"],
            picture_id=int(data["picture_id"]),
            data=data.get("data", {}),
            published=data.get("published", ""),
        )


class ActivityLog:
    """
    Append-only activity storage.

    Kept in memory when ``store_dir`` is None, otherwise persisted:

        store_dir/
            activities.json
    """

    def __init__(self, store_dir: Path | str = None):
        self.store_dir = Path(store_dir) if store_dir is not None else None
        self._lock = threading.RLock()
        self._activities: List[Activity] = []
        if self.store_dir is not None:
            self.store_dir.mkdir(parents=True, exist_ok=True)
            self._load()

    def _log_path(self) -> Path:
        return self.store_dir / "activities.json"

    def _load(self):
        """Load activities from disk."""
        try:
            data = load_index(self._log_path())
            if data is None:
                return
            self._activities = [Activity.from_dict(a) for a in data.get("activities", [])]
        except (AttributeError, KeyError, TypeError, ValueError) as e:
            logger.warning(f"Failed to load activities: {e}")
            self._activities = []

    def _save(self):
        """Save activities to disk."""
        if self.store_dir is None:
            return
        save_index(self._log_path(), {
            "activities": [a.to_dict() for a in self._activities],
        })

    def add(self, activity: Activity) -> None:
        """Append an activity to the log."""
        with self._lock:
            self._activities.append(activity)
            try:
                self._save()
            except BaseException:
                self._activities.pop()
                raise

    def discard(self, activity_id: str) -> bool:
        """Withdraw an activity written by a transaction that failed."""
        with self._lock:
            for i, a in enumerate(self._activities):
                if a.activity_id == activity_id:
                    del self._activities[i]
                    self._save()
                    return True
        return False

    def get(self, activity_id: str) -> Optional[Activity]:
        """Get an activity by ID."""
        with self._lock:
            for a in self._activities:
                if a.activity_id == activity_id:
                    return a
        return None

    def list(self) -> List[Activity]:
        """List all activities, oldest first."""
        with self._lock:
            return list(self._activities)

    def find_by_picture(self, picture_id: int) -> List[Activity]:
        """Activities recorded against a picture."""
        with self._lock:
            return [a for a in self._activities if a.picture_id == picture_id]

    def find_by_actor(self, actor: str) -> List[Activity]:
        """Activities performed by an identity."""
        with self._lock:
            return [a for a in self._activities if a.actor == actor]

    def __len__(self) -> int:
        return len(self._activities)
