"""Exception types raised by underbar."""


class UnderbarError(Exception):
    """Base class for every error raised by the toolkit itself."""
    error_code = "UNDERBAR_ERROR"


class InvalidCollectionError(UnderbarError, TypeError):
    """Raised when a collection argument is neither a Sequence nor a Mapping."""
    error_code = "INVALID_COLLECTION"

    def __init__(self, value):
        self.value = value
        super().__init__(
            f"Expected a sequence or mapping, got {type(value).__name__}"
        )


class MemoizeKeyError(UnderbarError, TypeError):
    """Raised when memoize cannot build a cache key from the call arguments."""
    error_code = "MEMOIZE_KEY_ERROR"


class SchedulerUnavailableError(UnderbarError, RuntimeError):
    """Raised when delay/throttle need an event loop and none is running."""
    error_code = "SCHEDULER_UNAVAILABLE"


class UnknownCallableError(UnderbarError, KeyError):
    """Raised when a named callable is not in the registry."""
    error_code = "UNKNOWN_CALLABLE"

    def __init__(self, name: str, kind: str):
        self.name = name
        self.kind = kind
        super().__init__(f"Unknown {kind}: {name}")

    def __str__(self):
        # KeyError quotes its argument otherwise
        return self.args[0]
