"""Exceptions raised while reconciling companions."""


class CompanionError(Exception):
    """Base class for companion reconciliation failures."""


class TransientStoreError(CompanionError):
    """Raised when a read or write against the API server fails.

    Covers every failure except the ones the store maps to a result
    (404 on reads and deletes, 409 on creates). The reconcile attempt is
    aborted and retried by the event delivery layer.
    """

    def __init__(self, message, status=None, reason=None):
        super().__init__(message)
        self.status = status
        self.reason = reason


class PolicyError(CompanionError):
    """Raised when a binding policy cannot attach the owner link."""
