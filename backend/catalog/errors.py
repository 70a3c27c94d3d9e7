"""Domain exceptions raised by the catalog and search layers."""


class CatalogError(Exception):
    """Base class for every error the catalog raises on purpose."""


class EntityNotFound(CatalogError):
    def __init__(self, ref: str):
        super().__init__(f"Entity not found: {ref}")
        self.ref = ref


class InvalidEntityRef(CatalogError, ValueError):
    pass


class DuplicateEdge(CatalogError):
    def __init__(self, from_ref: str, to_ref: str):
        super().__init__(f"Cross reference already exists: {from_ref} -> {to_ref}")
        self.from_ref = from_ref
        self.to_ref = to_ref


class InvalidSortKey(CatalogError, ValueError):
    def __init__(self, sort_by: str, allowed: list[str]):
        super().__init__(f"Unknown sort key '{sort_by}' (expected one of: {', '.join(allowed)})")
        self.sort_by = sort_by
        self.allowed = allowed


class InvalidFilter(CatalogError, ValueError):
    pass


class InvalidUpdate(CatalogError, ValueError):
    pass


class IndexEngineError(CatalogError):
    """The index engine rejected a request."""


class IndexEngineUnavailable(IndexEngineError):
    """The index engine could not be reached or failed server-side."""


class BulkIndexError(CatalogError):
    """A bulk build stopped part way; ``indexed`` documents were flushed before it."""

    def __init__(self, collection: str, indexed: int, cause: Exception):
        super().__init__(f"Bulk indexing of '{collection}' failed after {indexed} documents: {cause}")
        self.collection = collection
        self.indexed = indexed


class IndexBuildCancelled(CatalogError):
    def __init__(self, collection: str, indexed: int):
        super().__init__(f"Bulk indexing of '{collection}' cancelled after {indexed} documents")
        self.collection = collection
        self.indexed = indexed
