"""Custom domain exceptions for the transaction graph explorer."""


class ExplorerError(Exception):
    """Base class for all explorer exceptions."""

    def __init__(self, message: str, context: dict | None = None):
        super().__init__(message)
        self.message = message
        self.context = context or {}


class InvalidGraphError(ExplorerError):
    """Raised when a graph mutation would break the arena invariants."""

    def __init__(self, element_id: str, reason: str):
        super().__init__(
            f"Invalid graph element '{element_id}': {reason}",
            context={"element_id": element_id, "reason": reason},
        )


class StateValidationError(ExplorerError):
    """Raised when a graph state snapshot violates the record shape."""

    def __init__(self, state_field: str, expected: str, actual: str):
        super().__init__(
            f"Invalid state for '{state_field}': expected {expected}, got {actual}",
            context={"field": state_field, "expected": expected, "actual": actual},
        )


class AdapterError(ExplorerError):
    """Raised when an adapter fails to communicate with an external service."""

    def __init__(self, adapter_name: str, operation: str, original_error: Exception):
        super().__init__(
            f"Adapter '{adapter_name}' failed during '{operation}': {str(original_error)}",
            context={
                "adapter": adapter_name,
                "operation": operation,
                "original_error": str(original_error),
            },
        )
        self.original_error = original_error


class FetchFailure(AdapterError):
    """Raised when the transaction data source cannot deliver a window."""


class StorageError(AdapterError):
    """Raised when the durable key-value store fails."""


class StorageQuotaExceeded(StorageError):
    """Raised when a durable write would exceed the storage quota."""

    def __init__(self, adapter_name: str, key: str, requested: int, quota: int):
        super().__init__(
            adapter_name,
            "set",
            OverflowError(f"writing {requested} bytes to '{key}' exceeds quota of {quota} bytes"),
        )
        self.context.update({"key": key, "requested": requested, "quota": quota})
