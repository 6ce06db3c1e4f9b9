"""Domain error taxonomy."""

from __future__ import annotations


class DependencyFlowError(RuntimeError):
    """Base class for dependency-flow domain errors."""


class DependencyConfigurationError(DependencyFlowError, ValueError):
    """Raised when a dependency record violates its coherency restrictions."""


class MergePolicyConfigurationError(DependencyFlowError, ValueError):
    """Raised when merge policy definitions are unknown or malformed."""


class CoherencyError(DependencyFlowError):
    """Raised when manifests cannot be reconciled into a coherent dependency set."""


class SubscriptionNotFoundError(DependencyFlowError, LookupError):
    """Raised when a reconciliation unit refers to a subscription that no longer exists."""

    def __init__(self, subscription_id: object) -> None:
        super().__init__(
            f"Subscription '{subscription_id}' was not found and the pull request "
            "tracking for it has been cleared."
        )
        self.subscription_id = subscription_id


class UnknownReminderError(DependencyFlowError):
    """Raised when a reminder is delivered that no reconciliation unit handles."""


class BuildNotFoundError(DependencyFlowError, LookupError):
    """Raised when a requested build is not registered."""


class ConcurrentUpdateError(DependencyFlowError):
    """Raised when a commit collides with rows another writer stored first."""
