"""
Error types shared across the benten core.

Collaborator failures are raised as these types so that the workers can log
and skip a single file or message without knowing which backend failed.
"""


class BentenError(Exception):
    """Base class for all benten errors"""
    pass


class ConfigurationError(BentenError):
    """Raised when configuration is missing or invalid (fatal at startup)"""
    pass


class TagReadError(BentenError):
    """Raised when an audio file cannot be parsed"""
    pass


class BlobStoreError(BentenError):
    """Raised when an object-store operation fails"""
    pass


class BlobNotFoundError(BlobStoreError):
    """Raised when the requested object does not exist"""
    pass


class DocumentStoreError(BentenError):
    """Raised when a document-store operation or transaction fails"""
    pass


class QueryError(BentenError):
    """Base class for rejected search queries"""
    pass


class QueryTooShortError(QueryError):
    """Raised when a query has no leading gram"""
    pass


class InvalidQueryError(QueryError):
    """Raised when query parameters are out of range"""
    pass
