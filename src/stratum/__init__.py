"""Stratum: hierarchical application contexts on top of explicit dependency injection.

Components are declared on a registry and resolved once, at refresh, into an
immutable bundle. An application context wraps one such bundle together with
a resource resolver, an event publisher, a message resolver and an
environment, and contexts can be nested so that request- or module-level
definitions override the ones inherited from their parent.

Key Features:
    - Declarative component registration with profile filtering
    - Type-safe dependency injection using standard type hints
    - Parent/child contexts with local-first lookup
    - Explicit lifecycle: unrefreshed, active, closed
    - Capability injection through declared setters, no runtime proxies

Basic Usage:
    >>> from stratum.registry import ComponentProviderRegistry
    >>> from stratum.context import ApplicationContext
    >>>
    >>> registry = ComponentProviderRegistry()
    >>>
    >>> @registry.provides()
    >>> def make_database() -> Database:
    ...     return Database()
    >>>
    >>> with ApplicationContext(registry, application_name="shop") as context:
    ...     context.refresh()
    ...     db = context.get_component(Database)

The framework consists of several core modules:
    - registry: Component provider registration and introspection
    - builders, bundle: Bundle construction and materialisation
    - context: The hierarchical application context
    - lifecycle: The lifecycle state machine guarding a context
    - capabilities: Capability interfaces and the injection protocol
    - factory: Autowiring of objects created outside the registry
    - resources, events, messages, environment: Default capability backends
    - config: Settings loaded from the process environment
    - errors: Framework-specific exceptions
"""
