__all__ = [
    "DependencyError",
    "NotFoundError",
    "ComponentNotFoundError",
    "ResourceNotFoundError",
    "NoSuchMessageError",
    "PropertyNotFoundError",
    "AmbiguousComponentError",
    "InvalidStateError",
]


class DependencyError(Exception):
    """Raised when a component's dependency cannot be resolved or is misannotated."""

    pass


class NotFoundError(DependencyError, KeyError):
    """Raised when a requested key is absent. Recoverable; callers are expected to handle it."""

    def __init__(self, key, message=None):
        super().__init__(message or f"{key!r} not found")
        self.key = key

    def __str__(self):
        return str(self.args[0])


class ComponentNotFoundError(NotFoundError):
    def __init__(self, key):
        super().__init__(key, f"No component found for {_describe(key)}")


class ResourceNotFoundError(NotFoundError):
    def __init__(self, location):
        super().__init__(location, f"No resource found at '{location}'")


class NoSuchMessageError(NotFoundError):
    def __init__(self, key, locale):
        super().__init__(key, f"No message found under code '{key}' for locale '{locale}'")
        self.locale = locale


class PropertyNotFoundError(NotFoundError):
    def __init__(self, key):
        super().__init__(key, f"Required property '{key}' not found")


class AmbiguousComponentError(DependencyError):
    """Raised when a lookup by type matches more than one component at the same level."""

    def __init__(self, key, candidates):
        super().__init__(
            f"No unique component found for {_describe(key)}: candidates {sorted(candidates)}"
        )
        self.key = key
        self.candidates = list(candidates)


class InvalidStateError(RuntimeError):
    """Raised when an operation is invoked in a lifecycle state that does not allow it."""

    pass


def _describe(key) -> str:
    if isinstance(key, type):
        return f"type {key.__name__}"
    return f"name '{key}'"
