"""
Exceptions raised by the tagging subsystem
"""


class TaggableError(Exception):
    """Base class for tagging errors"""


class ConfigurationError(TaggableError, ValueError):
    """Invalid per-model tagging configuration.

    Raised when a TaggableConfig is built, never per document.
    """


class IndexRebuildError(TaggableError):
    """The tag index could not be rebuilt.

    The underlying store error is chained as ``__cause__``. The index stays
    dirty, so the next read retries the rebuild.
    """

    def __init__(self, collection_name: str, message: str):
        self.collection_name = collection_name
        super().__init__(f"Tag index rebuild failed for '{collection_name}': {message}")


class DocumentNotFoundError(TaggableError, LookupError):
    """No document with the given id exists in the tagged collection"""

    def __init__(self, document_id):
        self.document_id = document_id
        super().__init__(f"Document not found: {document_id}")
