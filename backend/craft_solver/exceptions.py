"""Exception types raised by the craft solver."""


class CraftError(Exception):
    """Base class for all craft solver errors."""


class IllegalActionError(CraftError):
    """An action was attempted that the current state does not allow."""

    def __init__(self, action: str, reason: str):
        self.action = action
        self.reason = reason
        super().__init__(f"Illegal action '{action}': {reason}")


class InvalidConfigurationError(CraftError, ValueError):
    """Solver or catalog configuration that can never produce a solve."""


class TreeCorruptionError(CraftError):
    """The search tree refers to a node that does not exist."""
