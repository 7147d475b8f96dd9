# listing_sync/errors.py
"""Exception types shared across the service."""


class ConfigurationError(Exception):
    """A schema variant is declared inconsistently. Raised at import time."""


class SnapshotError(Exception):
    """The uploaded snapshot cannot be reconciled at all.

    Raised before any row is touched, so a batch that fails this way leaves
    the store unchanged.
    """


class StoreError(Exception):
    """A single store operation failed and its transaction was rolled back."""
