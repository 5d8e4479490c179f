"""Exceptions for contribution review and ledger reconciliation."""


class InvalidTransitionError(Exception):
    """A review action is not allowed from the contribution's current status."""

    def __init__(self, current: str, action: str, message: str | None = None):
        self.current = current
        self.action = action
        super().__init__(message or f"Cannot {action} a contribution that is {current}")


class ReconciliationFatalError(Exception):
    """The reconciliation batch could not load its input and was aborted."""
