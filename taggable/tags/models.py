"""
Tagged documents and the tagged collection (one model type)
"""
from typing import Dict, Any, List, Optional, Iterable, Tuple, Union

from pymongo import ReturnDocument
from pymongo.collection import Collection

from taggable.config.config import TaggableConfig, logger
from taggable.errors import DocumentNotFoundError
from taggable.tags.index import TagIndex, build_index_builder
from taggable.tags.parser import TagInput, format_tags, normalize_tags
from taggable.tags.related import rank_candidates, related_pipeline, score_tags, seed_tag_counts
from taggable.tags.state import IndexFreshness, LocalIndexState, MongoIndexState
from taggable.utils.helpers import document_to_dict, to_object_id


class TaggedDocument:
    """A document with a normalized tag list.

    Assigning ``tags`` normalizes the value and sets ``tags_dirty``; the flag
    is never stored and is cleared once the document is saved.
    """

    def __init__(self, data: Optional[Dict[str, Any]] = None, config: Optional[TaggableConfig] = None,
                 score: Optional[float] = None):
        self.config = config or TaggableConfig()
        self.data = dict(data or {})
        self.tags_dirty = False
        self.score = score

        stored = self.data.get(self.config.field_name)
        if stored is None or isinstance(stored, str):
            self.data[self.config.field_name] = normalize_tags(stored, self.config.separator)

    @property
    def id(self):
        return self.data.get('_id')

    @property
    def tags(self) -> List[str]:
        return list(self.data.get(self.config.field_name) or [])

    @tags.setter
    def tags(self, value: TagInput):
        self.data[self.config.field_name] = normalize_tags(value, self.config.separator)
        self.tags_dirty = True

    @property
    def tags_string(self) -> str:
        """Tags joined with the configured separator"""
        return format_tags(self.tags, self.config.separator)

    @tags_string.setter
    def tags_string(self, value: Optional[str]):
        self.tags = value

    def get(self, key: str, default: Any = None) -> Any:
        return self.data.get(key, default)

    def __getitem__(self, key: str) -> Any:
        return self.data[key]

    def __setitem__(self, key: str, value: Any):
        if key == self.config.field_name:
            self.tags = value
        else:
            self.data[key] = value

    def __eq__(self, other):
        if not isinstance(other, TaggedDocument):
            return NotImplemented
        return self.id is not None and self.id == other.id

    def __hash__(self):
        return hash(self.id)

    def __repr__(self):
        return f"TaggedDocument(id={self.id!r}, tags={self.tags!r})"

    def to_dict(self) -> Dict[str, Any]:
        result = document_to_dict(self.data)
        if self.score is not None:
            result['score'] = self.score
        return result


DocumentRef = Union[TaggedDocument, Dict[str, Any], Any]


class TaggedCollection:
    """Tagging for one MongoDB collection.

    Writes go through insert/save/update/delete so the tag index is marked
    dirty; reads of the index rebuild it first when needed.
    """

    def __init__(self, collection: Collection, config: Optional[TaggableConfig] = None, state=None):
        self.collection = collection
        self.config = config or TaggableConfig()

        self.index_collection = collection.database[self.config.index_collection_for(collection.name)]
        self.builder = build_index_builder(collection, self.config)
        self.index = TagIndex(self.index_collection)

        if state is None:
            if self.config.shared_state:
                state = MongoIndexState(collection.database[self.config.meta_collection_for(collection.name)])
            else:
                state = LocalIndexState()
        self.freshness = IndexFreshness(self.builder, state, enabled=self.config.index_enabled)

    @property
    def field_name(self) -> str:
        return self.config.field_name

    def _scoped(self, criteria: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        filters = [f for f in (self.config.default_scope, criteria) if f]
        if not filters:
            return {}
        if len(filters) == 1:
            return dict(filters[0])
        return {'$and': filters}

    def _wrap(self, data: Optional[Dict[str, Any]]) -> Optional[TaggedDocument]:
        if data is None:
            return None
        return TaggedDocument(data, self.config)

    # Documents

    def new(self, data: Optional[Dict[str, Any]] = None, tags: TagInput = None) -> TaggedDocument:
        """Build an unsaved document"""
        document = TaggedDocument(data, self.config)
        if tags is not None:
            document.tags = tags
        return document

    def find_by_id(self, document_id) -> Optional[TaggedDocument]:
        return self._wrap(self.collection.find_one({'_id': to_object_id(document_id)}))

    def get(self, document_id) -> TaggedDocument:
        document = self.find_by_id(document_id)
        if document is None:
            raise DocumentNotFoundError(document_id)
        return document

    def find(self, criteria: Optional[Dict[str, Any]] = None, limit: int = 0) -> List[TaggedDocument]:
        cursor = self.collection.find(self._scoped(criteria))
        if limit:
            cursor = cursor.limit(limit)
        return [self._wrap(data) for data in cursor]

    def count(self) -> int:
        return self.collection.count_documents(self._scoped())

    def insert(self, data: Union[TaggedDocument, Dict[str, Any], None] = None,
               tags: TagInput = None) -> TaggedDocument:
        """Insert a new document and mark the index dirty"""
        document = data if isinstance(data, TaggedDocument) else self.new(data)
        if tags is not None:
            document.tags = tags

        result = self.collection.insert_one(document.data)
        document.data['_id'] = result.inserted_id

        self.freshness.after_save(None, document.tags, created=True)
        document.tags_dirty = False
        logger.info(f"Created document {result.inserted_id} in {self.collection.name}")
        return document

    def create(self, tags: TagInput = None, **fields) -> TaggedDocument:
        """Shortcut for ``insert(fields, tags=tags)``"""
        return self.insert(fields, tags=tags)

    def save(self, document: TaggedDocument) -> TaggedDocument:
        """Insert or replace a document.

        The index is marked dirty only if the document is new or its tags
        differ from the ones it replaced.
        """
        if document.id is None:
            return self.insert(document)

        # Compare with the replaced copy; a stale document can restore old tags
        existing = self.collection.find_one_and_replace(
            {'_id': document.id},
            document.data,
            projection={self.field_name: 1},
            upsert=True,
            return_document=ReturnDocument.BEFORE
        )

        old_tags = (existing or {}).get(self.field_name) or []
        self.freshness.after_save(old_tags, document.tags, created=existing is None)
        document.tags_dirty = False
        return document

    def update(self, document_id, fields: Dict[str, Any]) -> TaggedDocument:
        """Set fields on a stored document, normalizing the tag field"""
        object_id = to_object_id(document_id)
        update_data = dict(fields)
        update_data.pop('_id', None)
        nested = [key for key in update_data if key.startswith(f"{self.field_name}.")]
        if nested:
            raise ValueError(f"Cannot update tag elements directly: {', '.join(sorted(nested))}; "
                             f"set '{self.field_name}' instead")
        if self.field_name in update_data:
            update_data[self.field_name] = normalize_tags(update_data[self.field_name], self.config.separator)

        if not update_data:
            return self.get(object_id)

        previous = self.collection.find_one_and_update(
            {'_id': object_id},
            {'$set': update_data},
            return_document=ReturnDocument.BEFORE
        )
        if previous is None:
            raise DocumentNotFoundError(document_id)

        if self.field_name in update_data:
            self.freshness.after_save(previous.get(self.field_name) or [], update_data[self.field_name])

        document = self._wrap({**previous, **update_data})
        return document

    def update_tags(self, document_id, tags: TagInput) -> TaggedDocument:
        return self.update(document_id, {self.field_name: tags})

    def delete(self, document_id) -> bool:
        """Delete a document and mark the index dirty"""
        result = self.collection.delete_one({'_id': to_object_id(document_id)})
        if result.deleted_count == 0:
            raise DocumentNotFoundError(document_id)
        self.freshness.after_delete()
        return True

    # Tag queries

    def _query_tags(self, tags: TagInput) -> List[str]:
        return list(dict.fromkeys(normalize_tags(tags, self.config.separator)))

    def tagged_with_any(self, tags: TagInput, criteria: Optional[Dict[str, Any]] = None) -> List[TaggedDocument]:
        """Documents carrying at least one of the tags. No tags, no documents"""
        query_tags = self._query_tags(tags)
        if not query_tags:
            return []
        return self.find({**(criteria or {}), self.field_name: {'$in': query_tags}})

    def tagged_with_all(self, tags: TagInput, criteria: Optional[Dict[str, Any]] = None) -> List[TaggedDocument]:
        """Documents carrying every one of the tags. No tags, no documents"""
        query_tags = self._query_tags(tags)
        if not query_tags:
            return []
        return self.find({**(criteria or {}), self.field_name: {'$all': query_tags}})

    def tagged_with(self, tags: TagInput, criteria: Optional[Dict[str, Any]] = None) -> List[TaggedDocument]:
        return self.tagged_with_all(tags, criteria)

    # Tag index

    def enable_index(self) -> None:
        self.freshness.enable()

    def disable_index(self) -> None:
        self.freshness.disable()

    def reindex(self) -> int:
        return self.freshness.reindex()

    def tags(self) -> List[str]:
        """Distinct tags of the collection, sorted"""
        self.freshness.ensure_fresh()
        return self.index.tags()

    def tags_with_weight(self) -> List[Tuple[str, int]]:
        """``(tag, count)`` pairs, sorted by tag; handy for tag clouds"""
        self.freshness.ensure_fresh()
        return self.index.tags_with_weight()

    def tags_with_uniqueness(self) -> List[Tuple[str, float]]:
        self.freshness.ensure_fresh()
        return self.index.tags_with_uniqueness()

    def tag_entries(self) -> List[Dict[str, Any]]:
        self.freshness.ensure_fresh()
        return self.index.entries()

    def tag_entry(self, tag: str) -> Dict[str, Any]:
        self.freshness.ensure_fresh()
        return self.index.entry(tag.strip())

    # Related documents

    def _resolve(self, ref: DocumentRef) -> TaggedDocument:
        if isinstance(ref, TaggedDocument):
            return ref
        if isinstance(ref, dict):
            return TaggedDocument(ref, self.config)
        return self.get(ref)

    def _uniqueness_weights(self) -> Dict[str, float]:
        return dict(self.tags_with_uniqueness())

    def find_related(self, seeds: Iterable[DocumentRef], limit: int = 0, weigh_by_uniqueness: bool = False,
                     stages: Optional[Iterable[Dict[str, Any]]] = None) -> List[TaggedDocument]:
        """Documents ranked by the tags they share with the seeds.

        Seeds themselves are never returned. Each result carries its
        ``score``. ``stages`` are extra pipeline stages applied first.
        """
        if limit < 0:
            raise ValueError("limit must be >= 0")

        seed_documents = [self._resolve(seed) for seed in seeds]
        seed_counts = seed_tag_counts(document.tags for document in seed_documents)
        if not seed_counts:
            return []

        excluded_ids = [document.id for document in seed_documents if document.id is not None]
        weights = self._uniqueness_weights() if weigh_by_uniqueness else None
        pipeline = related_pipeline(self.field_name, seed_counts, excluded_ids,
                                    stages=stages, scope=self.config.default_scope)

        ranked = rank_candidates(self.collection.aggregate(pipeline), self.field_name,
                                 seed_counts, weights, limit)
        return [TaggedDocument(data, self.config, score=data.pop('score')) for data in ranked]

    def related_to(self, document: DocumentRef, limit: int = 0, weigh_by_uniqueness: bool = False,
                   stages: Optional[Iterable[Dict[str, Any]]] = None) -> List[TaggedDocument]:
        return self.find_related([document], limit, weigh_by_uniqueness, stages)

    def similarity(self, document: DocumentRef, other: DocumentRef, weigh_by_uniqueness: bool = False) -> float:
        """Score of ``other`` as related to ``document``"""
        seed_counts = seed_tag_counts([self._resolve(document).tags])
        weights = self._uniqueness_weights() if weigh_by_uniqueness else None
        return score_tags(self._resolve(other).tags, seed_counts, weights)
