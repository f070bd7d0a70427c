"""Custom exceptions for the pool controller."""


class PoolControllerError(Exception):
    """Base exception for all pool controller errors."""

    def __init__(self, message: str, details: str = None):
        """Initialize the exception.

        Args:
            message: Main error message
            details: Additional details or suggestions
        """
        self.message = message
        self.details = details
        super().__init__(self.format_message())

    def format_message(self) -> str:
        """Format the complete error message.

        Returns:
            Formatted error message with details
        """
        if self.details:
            return f"{self.message}\n\nDetails: {self.details}"
        return self.message


class KubernetesError(PoolControllerError):
    """Exception raised for Kubernetes API errors."""

    pass


class NotFoundError(KubernetesError):
    """Exception raised when a requested object does not exist."""

    pass


class ConflictError(KubernetesError):
    """Exception raised when a write was based on a stale resource version."""

    pass


class ConfigurationError(PoolControllerError):
    """Exception raised for controller settings errors."""

    pass


class InvalidSelectorError(PoolControllerError):
    """Exception raised when a pool's node selector cannot be compiled."""

    pass


class InvalidBudgetError(PoolControllerError):
    """Exception raised when a disruption budget is not an integer or percentage."""

    pass


class AmbiguousAssignmentError(PoolControllerError):
    """Exception raised when a node matches an incompatible set of pools."""

    def __init__(self, message: str, node_name: str, pool_names: list[str], details: str = None):
        self.node_name = node_name
        self.pool_names = pool_names
        super().__init__(message, details)


class MutationFailedError(PoolControllerError):
    """Exception raised when a node mutation could not be applied."""

    pass


class ConflictExhaustedError(MutationFailedError):
    """Exception raised when conflict retries for a node mutation ran out."""

    pass
