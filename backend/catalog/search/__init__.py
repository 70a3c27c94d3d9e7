"""Search: documents, index engines, synchronization and query translation."""
