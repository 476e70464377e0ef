"""
Tag index: rebuild strategies and read access to the derived index collection
"""
from collections import Counter
from typing import Dict, Any, List, Optional, Tuple, Iterable

from pymongo import ReturnDocument
from pymongo.collection import Collection
from pymongo.errors import DuplicateKeyError, PyMongoError

from taggable.config.config import logger
from taggable.errors import IndexRebuildError

REVISION_DOCUMENT_ID = 'rebuild_revision'
FINISHED_DOCUMENT_ID = 'finished_revision'


def compute_uniqueness(count: int, total: int) -> float:
    """1 - count/total, clamped to [0, 1]; 0.0 for an empty collection"""
    if total <= 0:
        return 0.0
    return min(1.0, max(0.0, 1.0 - float(count) / total))


class TagIndexBuilder:
    """Recomputes the tag index of a whole collection.

    Subclasses only decide how tags are counted; storing the result is
    shared. Each rebuild takes a ticket from a counter in the meta
    collection before scanning, and every entry it writes is stamped with
    that ticket. A rebuild never overwrites an entry stamped by a later
    one. When it finishes it records its ticket and deletes every entry
    stamped before the newest finished ticket, so an older rebuild
    finishing last cannot leave its stale entries behind.
    """

    def __init__(self, collection: Collection, index_collection: Collection,
                 field_name: str = 'tags', scope: Optional[Dict[str, Any]] = None,
                 meta_collection: Optional[Collection] = None):
        self.collection = collection
        self.index_collection = index_collection
        self.field_name = field_name
        self.scope = scope
        if meta_collection is None:
            meta_collection = collection.database[f"{index_collection.name}_meta"]
        self.meta_collection = meta_collection

    def count_tags(self) -> Tuple[List[Tuple[str, int]], int]:
        """Return ``([(tag, count), ...], total_documents)`` sorted by tag"""
        raise NotImplementedError

    def next_revision(self) -> int:
        """Atomically draw the next rebuild ticket"""
        counter = self.meta_collection.find_one_and_update(
            {'_id': REVISION_DOCUMENT_ID},
            {'$inc': {'value': 1}},
            upsert=True,
            return_document=ReturnDocument.AFTER
        )
        return counter['value']

    def finish_revision(self, revision: int) -> int:
        """Record a finished rebuild; returns the newest finished ticket"""
        finished = self.meta_collection.find_one_and_update(
            {'_id': FINISHED_DOCUMENT_ID},
            {'$max': {'value': revision}},
            upsert=True,
            return_document=ReturnDocument.AFTER
        )
        return finished['value']

    def rebuild(self) -> int:
        """Rebuild the index and return the number of entries written"""
        try:
            revision = self.next_revision()
            counts, total = self.count_tags()
            written = self._replace_index(counts, total, revision)
        except PyMongoError as e:
            logger.error(f"Error rebuilding tag index {self.index_collection.name}: {str(e)}")
            raise IndexRebuildError(self.collection.name, str(e)) from e

        logger.info(f"Rebuilt tag index {self.index_collection.name}: "
                    f"{written} tags across {total} documents")
        return written

    def _replace_index(self, counts: List[Tuple[str, int]], total: int, revision: int) -> int:
        written = 0
        for tag, count in counts:
            try:
                self.index_collection.update_one(
                    {'_id': tag, 'revision': {'$not': {'$gt': revision}}},
                    {'$set': {'count': count,
                              'uniqueness': compute_uniqueness(count, total),
                              'revision': revision}},
                    upsert=True
                )
                written += 1
            except DuplicateKeyError:
                # A later rebuild already wrote this tag
                logger.debug(f"Skipped tag {tag!r}: newer than revision {revision}")

        # Drops tags no document carries anymore, and entries an older
        # rebuild wrote after a newer one finished
        finished = self.finish_revision(revision)
        self.index_collection.delete_many({'revision': {'$not': {'$gte': finished}}})
        return written


class AggregationIndexBuilder(TagIndexBuilder):
    """Counts tags with a server-side aggregation pipeline"""

    def pipeline(self) -> List[Dict[str, Any]]:
        stages = []
        if self.scope:
            stages.append({'$match': self.scope})
        stages.extend([
            {'$project': {'_id': 1, 'tag': f'${self.field_name}'}},
            {'$unwind': '$tag'},
            # One row per (document, tag) so repeated tags count once
            {'$group': {'_id': {'document': '$_id', 'tag': '$tag'}}},
            {'$group': {'_id': '$_id.tag', 'count': {'$sum': 1}}},
            {'$sort': {'_id': 1}},
        ])
        return stages

    def count_tags(self) -> Tuple[List[Tuple[str, int]], int]:
        counts = [
            (row['_id'], row['count'])
            for row in self.collection.aggregate(self.pipeline())
            if isinstance(row['_id'], str) and row['_id'].strip()
        ]
        total = self.collection.count_documents(self.scope or {})
        return counts, total


class MapReduceIndexBuilder(TagIndexBuilder):
    """Counts tags client-side: map each document to its distinct tags,
    then reduce by summing per tag"""

    def count_tags(self) -> Tuple[List[Tuple[str, int]], int]:
        counts = Counter()
        total = 0
        for document in self.collection.find(self.scope or {}, {self.field_name: 1}):
            total += 1
            counts.update(self._emit(document.get(self.field_name)))
        return sorted(counts.items()), total

    @staticmethod
    def _emit(value) -> Iterable[str]:
        if not value:
            return ()
        if isinstance(value, str):
            value = [value]
        return {tag for tag in value if isinstance(tag, str) and tag.strip()}


def build_index_builder(collection: Collection, config) -> TagIndexBuilder:
    """Pick the rebuild strategy configured for a model"""
    index_collection = collection.database[config.index_collection_for(collection.name)]
    meta_collection = collection.database[config.meta_collection_for(collection.name)]
    scope = config.default_scope if config.index_default_scope else None
    builder_class = AggregationIndexBuilder if config.aggregation_enabled else MapReduceIndexBuilder
    return builder_class(collection, index_collection, config.field_name, scope, meta_collection)


class TagIndex:
    """Read access to a tag index collection, ordered by tag"""

    def __init__(self, index_collection: Collection):
        self.index_collection = index_collection

    def entries(self) -> List[Dict[str, Any]]:
        """All entries as ``{'tag', 'count', 'uniqueness'}`` dicts"""
        return [
            {'tag': entry['_id'], 'count': entry.get('count', 0), 'uniqueness': entry.get('uniqueness', 0.0)}
            for entry in self.index_collection.find().sort('_id', 1)
        ]

    def entry(self, tag: str) -> Dict[str, Any]:
        """Entry for one tag; a zero-count entry if the tag is unknown"""
        entry = self.index_collection.find_one({'_id': tag})
        if entry:
            return {'tag': tag, 'count': entry.get('count', 0), 'uniqueness': entry.get('uniqueness', 0.0)}
        return {'tag': tag, 'count': 0, 'uniqueness': 0.0}

    def tags(self) -> List[str]:
        return [entry['tag'] for entry in self.entries()]

    def tags_with_weight(self) -> List[Tuple[str, int]]:
        return [(entry['tag'], entry['count']) for entry in self.entries()]

    def tags_with_uniqueness(self) -> List[Tuple[str, float]]:
        return [(entry['tag'], entry['uniqueness']) for entry in self.entries()]
