"""
Database initialization and common operations
"""
from pymongo import MongoClient
from pymongo.collection import Collection
from pymongo.errors import PyMongoError
from taggable.config.config import MONGO_URI, MONGO_DB_NAME, COLLECTION_NAME, logger

# Initialize MongoDB connection
client = MongoClient(MONGO_URI)
db = client[MONGO_DB_NAME]
documents_collection = db[COLLECTION_NAME]

# Ensure indexes for performance
def ensure_indexes(collection: Collection, field_name: str = 'tags') -> bool:
    """Create the multikey index used by tag queries"""
    try:
        collection.create_index(field_name)
        return True
    except PyMongoError as e:
        logger.error(f"Could not create tag index on {collection.name}.{field_name}: {e}")
        return False
