"""
Tag index freshness: dirty/clean state records and the controller that
rebuilds the index lazily on read
"""
import datetime
from typing import Iterable, Optional

from pymongo.collection import Collection

from taggable.config.config import logger

STATE_DOCUMENT_ID = 'freshness'


class LocalIndexState:
    """Dirty/clean flag kept in this process only.

    Every process decides for itself whether to rebuild. A new process
    starts dirty, so its first index read rebuilds.
    """

    def __init__(self):
        self._version = 1
        self._built_version = 0

    def current_version(self) -> int:
        return self._version

    def mark_dirty(self) -> None:
        self._version += 1

    def mark_clean(self, version: int) -> None:
        self._built_version = max(self._built_version, version)

    def is_dirty(self) -> bool:
        return self._built_version < self._version


class MongoIndexState:
    """Dirty/clean flag stored in MongoDB and shared by every process.

    ``version`` is bumped on each dirtying write; ``built_version`` holds the
    version covered by the last completed rebuild. Both updates are atomic
    single-document operations.
    """

    def __init__(self, collection: Collection, key: str = STATE_DOCUMENT_ID):
        self.collection = collection
        self.key = key

    def _load(self) -> Optional[dict]:
        return self.collection.find_one({'_id': self.key})

    def current_version(self) -> int:
        state = self._load()
        return state.get('version', 0) if state else 0

    def mark_dirty(self) -> None:
        self.collection.update_one(
            {'_id': self.key},
            {'$inc': {'version': 1}, '$set': {'dirtied_at': datetime.datetime.now()}},
            upsert=True
        )

    def mark_clean(self, version: int) -> None:
        self.collection.update_one(
            {'_id': self.key},
            {'$max': {'built_version': version}, '$set': {'built_at': datetime.datetime.now()}},
            upsert=True
        )

    def is_dirty(self) -> bool:
        state = self._load()
        # Never built
        if not state or 'built_version' not in state:
            return True
        return state['built_version'] < state.get('version', 0)


class IndexFreshness:
    """Decides when the tag index must be rebuilt.

    Writes only mark the index dirty; the rebuild happens on the next read
    that needs the index, so any number of writes costs one rebuild.
    """

    def __init__(self, builder, state=None, enabled: bool = True):
        self.builder = builder
        self.state = state if state is not None else LocalIndexState()
        self._enabled = enabled

    @property
    def enabled(self) -> bool:
        return self._enabled

    def enable(self) -> None:
        self._enabled = True

    def disable(self) -> None:
        self._enabled = False

    def is_dirty(self) -> bool:
        return self.state.is_dirty()

    def after_save(self, old_tags: Optional[Iterable[str]], new_tags: Optional[Iterable[str]],
                   created: bool = False) -> bool:
        """Record a successful write. Returns True if the index became dirty"""
        if not self._enabled:
            return False
        if not created and list(old_tags or []) == list(new_tags or []):
            return False
        self.state.mark_dirty()
        logger.debug("Tag index marked dirty by write")
        return True

    def after_delete(self) -> bool:
        """Record a successful delete"""
        if not self._enabled:
            return False
        self.state.mark_dirty()
        logger.debug("Tag index marked dirty by delete")
        return True

    def ensure_fresh(self) -> bool:
        """Rebuild the index if it is dirty. Returns True if a rebuild ran"""
        if not self._enabled or not self.state.is_dirty():
            return False
        self._rebuild()
        return True

    def reindex(self) -> int:
        """Rebuild unconditionally"""
        return self._rebuild()

    def _rebuild(self) -> int:
        # Capture the version first: writes landing during the build keep it dirty
        version = self.state.current_version()
        written = self.builder.rebuild()
        self.state.mark_clean(version)
        return written
