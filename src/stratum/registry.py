"""Registration and introspection utilities for component providers."""

import inspect
from dataclasses import dataclass, field
from typing import (
    Callable,
    get_type_hints,
    get_origin,
    Annotated,
    get_args,
    Iterable,
    Optional,
    Any,
)

from stratum.domain import Capability, Dependency
from stratum.errors import DependencyError

__all__ = [
    "Dependency",
    "ComponentProvider",
    "ComponentProviderRegistry",
    "aware",
    "profiles_match",
    "get_dependencies",
]


@dataclass(frozen=True)
class ComponentProvider:
    """Encapsulates metadata about a registered component provider.

    ComponentProvider instances represent functions or classes that can create
    components for a context. They contain all the metadata needed to
    understand what the provider creates, what it depends on, under what
    conditions it should be active, and which context capabilities must be
    injected into the component once it has been built.

    Attributes:
        name: Logical name of the component (may be derived from function name
            if not explicitly stated in the registration decorator).
        func: The callable providing the component (function or class constructor).
        profiles: List of profile names under which the component is active.
            Empty list means active in all profiles.
        provided_types: List of types this provider can satisfy. For functions,
            contains the return type annotation (if present). For classes,
            contains the class itself plus its direct base classes.
        dependencies: List of Dependency objects describing what this provider needs.
        metadata: Dictionary of arbitrary metadata attached to the provider.
        capabilities: Capabilities to inject after construction.

    Example:
        >>> @registry.provides(name="greeter", aware=[Capability.MESSAGES])
        >>> class Greeter:
        ...     def set_message_resolver(self, messages): ...
        >>>
        >>> # Creates ComponentProvider with:
        >>> # - name: "greeter"
        >>> # - provided_types: [Greeter, object]
        >>> # - capabilities: frozenset({Capability.MESSAGES})
    """

    name: str
    func: Callable
    profiles: list[str]
    provided_types: list[type]
    dependencies: list[Dependency]
    metadata: dict[str, Any]
    capabilities: frozenset[Capability] = field(default_factory=frozenset)


def inferred_name(target: Any) -> str:
    """Derive component name from class or function name, removing 'make_' prefix if present.

    Example:
        >>> inferred_name(Database)       # Returns "Database"
        >>> inferred_name(make_database)  # Returns "database"
        >>> inferred_name(my_service)     # Returns "my_service"
    """
    if inspect.isclass(target):
        return target.__name__

    if target.__name__.startswith("make_"):
        return target.__name__[5:]
    else:
        return target.__name__


def aware(*capabilities: Capability) -> Callable:
    """Declare the capabilities a provider's component needs injected.

    Can be stacked under ``registry.provides``; the declarations are merged
    with any passed to ``provides(aware=...)``.

    Example:
        @registry.provides()
        @aware(Capability.EVENTS)
        class Auditor:
            def set_event_publisher(self, publisher): ...
    """
    def decorator(target: Any) -> Any:
        declared = set(getattr(target, "__provider_capabilities__", ()))
        declared.update(capabilities)
        target.__provider_capabilities__ = frozenset(declared)
        return target

    return decorator


class ComponentProviderRegistry:
    """Registry for components, supporting registration and profile-based filtering."""

    def __init__(self):
        self._providers = []

    def register(self, provider: ComponentProvider):
        """Register a component explicitly.

        Args:
            provider: The ComponentProvider instance to be registered.
        """
        self._providers.append(provider)

    def registered_providers(
        self, profiles: set[str] = None
    ) -> list[ComponentProvider]:
        """Retrieve components, optionally filtered by active profiles.

        Args:
            profiles: A set of active profile names. If None, returns all components.

        Returns:
            A list of components whose profiles match the given profile set.
        """
        if profiles is None:
            return self._providers
        return [c for c in self._providers if profiles_match(c.profiles, profiles)]

    def provides(
        self,
        name: Optional[str] = None,
        profiles: Optional[list[str]] = None,
        aware: Iterable[Capability] = (),
        destroy: Optional[str] = None,
    ) -> Callable:
        """Decorator to register a function or class as a component provider.

        Args:
            name: Optional logical name to assign; defaults to function name with 'make_'
                prefix removed.
            profiles: Optional list of profiles for which the component is active.
            aware: Capabilities the owning context should inject once the
                component is built.
            destroy: Name of a method to call on the component when its
                context is closed.

        Returns:
            A decorator that registers the function as a component.

        Example:
            @registry.provides(profiles=["dev"], destroy="close")
            def make_pool() -> Pool:
                return Pool()
        """
        def decorator(obj):
            provided_name = name or inferred_name(obj)
            extra_metadata = {"destroy": destroy} if destroy else {}
            if inspect.isclass(obj):
                obj = dataclass()(obj)
                provider = _make_class_provider(
                    obj, provided_name, profiles or [], aware, extra_metadata
                )
            elif inspect.isfunction(obj):
                provider = _make_function_provider(
                    obj, provided_name, profiles or [], aware, extra_metadata
                )
            else:
                raise DependencyError(f"{obj} is not a class or function")

            self.register(provider)
            return obj

        return decorator


def _make_class_provider(
    cls: Any,
    component_name: str,
    profiles: list[str],
    capabilities: Iterable[Capability],
    extra_metadata: dict[str, Any],
) -> ComponentProvider:
    """Create a ComponentProvider from a class wrapped with @dataclass.

    For classes, the provided_types list includes the class itself and its base classes,
    allowing the class to satisfy dependencies for any of its parent types.
    """
    provided_types = [cls] + list(cls.__bases__)

    return ComponentProvider(
        component_name,
        cls,
        profiles,
        provided_types,
        get_dependencies(cls),
        {**getattr(cls, "__provider_metadata__", {}), **extra_metadata},
        _declared_capabilities(cls, capabilities),
    )


def _make_function_provider(
    func: Callable,
    component_name: str,
    profiles: list[str],
    capabilities: Iterable[Capability],
    extra_metadata: dict[str, Any],
) -> ComponentProvider:
    """Create a ComponentProvider from a function."""
    return_type = get_type_hints(func).get("return", None)
    provided_types = [return_type] if return_type is not None else []

    return ComponentProvider(
        component_name,
        func,
        profiles,
        provided_types,
        get_dependencies(func),
        {**getattr(func, "__provider_metadata__", {}), **extra_metadata},
        _declared_capabilities(func, capabilities),
    )


def _declared_capabilities(target: Any, capabilities: Iterable[Capability]) -> frozenset[Capability]:
    declared = frozenset(getattr(target, "__provider_capabilities__", ())) | frozenset(capabilities)
    for capability in declared:
        if not isinstance(capability, Capability):
            raise DependencyError(f"{capability!r} is not a Capability")
    return declared


def profiles_match(stated: Iterable[str], selected: set[str]) -> bool:
    """Check if a provider's profile requirements match the selected profiles.

    Profile matching supports inclusion and exclusion patterns:
    - Normal profiles ("dev", "prod") must be in the selected set
    - Exclusion profiles ("!test") must NOT be in the selected set
    - Empty stated profiles match all selected profiles

    Example:
        >>> profiles_match(["dev"], {"dev"})          # True
        >>> profiles_match(["!test"], {"dev"})        # True
        >>> profiles_match(["!test"], {"test"})       # False
        >>> profiles_match(["prod"], {"dev"})         # False
    """
    provided = [p for p in stated if not p.startswith("!")]
    excluded = [p[1:] for p in stated if p.startswith("!")]

    return not any(e in selected for e in excluded) and (
        not provided or any(p in selected for p in provided)
    )


def get_dependencies(func: Callable) -> list[Dependency]:
    """Extract dependency information from a function's type annotations.

    Analyzes the function signature to create Dependency objects for each
    parameter. Supports both simple type annotations and Annotated types
    with qualifier metadata.

    Example:
        >>> def service(untyped, db: Database, cache: Annotated[Cache, "redis"]) -> Service:
        ...     pass
        >>> deps = get_dependencies(service)
        >>> # Returns:
        >>> # [Dependency("untyped", None, "untyped"),
        >>> #  Dependency("db", Database, None),
        >>> #  Dependency("cache", Cache, "redis")]
    """
    sig = inspect.signature(func)
    hints = get_type_hints(func, include_extras=True)
    if inspect.isclass(func):
        hints.update(get_type_hints(func.__init__, include_extras=True))
    return [
        _make_dependency(hints.get(name), name)
        for name, parameter in sig.parameters.items()
        if parameter.kind not in _VARIADIC
    ]


_VARIADIC = (inspect.Parameter.VAR_POSITIONAL, inspect.Parameter.VAR_KEYWORD)


def _make_dependency(annotation, name) -> Dependency:
    if not annotation:
        return Dependency(name, None, name)

    if get_origin(annotation) is Annotated:
        base_type, *metadata = get_args(annotation)
        component_name = next((m for m in metadata), None)
        return Dependency(name, base_type, component_name)
    else:
        return Dependency(name, annotation, None)
