"""Exception types for fitrank."""

from __future__ import annotations


class FitrankError(Exception):
    """Base class for all fitrank errors."""


class InvalidEventError(FitrankError, ValueError):
    """An event payload does not have the shape its type requires."""


class StoreError(FitrankError):
    """The progress store failed to read or write."""


class EvaluationError(FitrankError):
    """An evaluation could not run; no achievement state was changed."""


class ProgressFetchError(EvaluationError):
    pass


class CatalogFetchError(EvaluationError):
    pass
