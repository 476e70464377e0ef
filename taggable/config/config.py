"""
Configuration for the tagging service
"""
import os
import re
import logging
from dataclasses import dataclass, field
from typing import Dict, Any, Optional

from taggable.errors import ConfigurationError

# Configure logging
logging.basicConfig(level=logging.INFO, format='%(asctime)s - %(name)s - %(levelname)s - %(message)s')
logger = logging.getLogger('taggable')

# MongoDB configuration
MONGO_URI = os.getenv('MONGO_URI', 'mongodb://localhost:27017/')
MONGO_DB_NAME = os.getenv('MONGO_DB_NAME', 'taggable')
COLLECTION_NAME = os.getenv('TAGGABLE_COLLECTION', 'documents')

# Application settings
DEBUG = os.getenv('DEBUG', 'True') == 'True'

DEFAULT_FIELD_NAME = 'tags'
DEFAULT_SEPARATOR = ','

_FIELD_NAME_RE = re.compile(r'^[A-Za-z_][A-Za-z0-9_]*$')


def _env_flag(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ('1', 'true', 'yes', 'on')


@dataclass(frozen=True)
class TaggableConfig:
    """Tagging settings for one model type (one collection).

    Settings are process-wide for the collection, never per document.
    """
    field_name: str = DEFAULT_FIELD_NAME
    separator: str = DEFAULT_SEPARATOR
    # Keep the derived tag index up to date
    index_enabled: bool = True
    # Rebuild with a server-side aggregation pipeline instead of map-reduce
    aggregation_enabled: bool = False
    # Filter applied to tag queries, like a model's default scope
    default_scope: Optional[Dict[str, Any]] = field(default=None, hash=False)
    # Apply default_scope to index rebuilds as well
    index_default_scope: bool = False
    index_collection_name: Optional[str] = None
    # Keep the dirty/clean flag in the store so all processes share it
    shared_state: bool = False

    def __post_init__(self):
        if not isinstance(self.field_name, str) or not _FIELD_NAME_RE.match(self.field_name):
            raise ConfigurationError(f"Invalid tag field name: {self.field_name!r}")
        if not isinstance(self.separator, str) or self.separator == '':
            raise ConfigurationError("Tag separator must be a non-empty string")
        if self.default_scope is not None and not isinstance(self.default_scope, dict):
            raise ConfigurationError("default_scope must be a filter document (dict)")
        if self.index_default_scope and not self.default_scope:
            raise ConfigurationError("index_default_scope requires a default_scope")
        if self.index_collection_name is not None and not self.index_collection_name.strip():
            raise ConfigurationError("index_collection_name cannot be blank")

    def index_collection_for(self, collection_name: str) -> str:
        """Name of the derived tag index collection"""
        return self.index_collection_name or f"{collection_name}_{self.field_name}_index"

    def meta_collection_for(self, collection_name: str) -> str:
        """Name of the collection holding the shared dirty/clean state"""
        return f"{self.index_collection_for(collection_name)}_meta"


def config_from_env() -> TaggableConfig:
    """Build the tagging configuration from environment variables"""
    return TaggableConfig(
        field_name=os.getenv('TAGS_FIELD', DEFAULT_FIELD_NAME),
        separator=os.getenv('TAGS_SEPARATOR', DEFAULT_SEPARATOR),
        index_enabled=_env_flag('TAGS_INDEX_ENABLED', True),
        aggregation_enabled=_env_flag('TAGS_AGGREGATION', False),
        shared_state=_env_flag('TAGS_SHARED_STATE', False),
    )
