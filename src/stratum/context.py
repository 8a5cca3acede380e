"""The application context: one level of a hierarchy of managed components.

An :class:`ApplicationContext` owns the component registry of its level and
holds shared references to a resource resolver, an event publisher, a message
resolver and an environment. It exposes all of them through a single object
so that anything holding a context can act as a component lookup, a resource
loader, an event source and a message source without knowing which backend
is wired in.

Contexts nest. A child is given its parent when it is created and never
changes it, so a hierarchy is always a finite chain ending at a root.
Lookups search the child's own components first and then ask the parent;
a child definition therefore always wins over a same-named parent one.

Example:
    >>> root = ApplicationContext(shared_registry, context_id="root")
    >>> root.refresh()
    >>> child = ApplicationContext(request_registry, parent=root)
    >>> child.refresh()
    >>> child.get_component("database")   # defined on root
    >>> child.close(); root.close()
"""

import logging
from datetime import datetime, timezone
from typing import Any, Callable, Iterable, Optional, Sequence

from stratum.builders import make_bundle
from stratum.bundle import Bundle, ComponentKey
from stratum.capabilities import (
    EventPublisher,
    MessageResolver,
    ResourceResolver,
    capability_injector,
)
from stratum.component_builder import ComponentBuilder, ComponentTransformer
from stratum.component_set import ComponentSet
from stratum.config import ContextSettings, get_settings
from stratum.domain import MaterialisedComponent
from stratum.environment import EnvironPropertySource, Environment
from stratum.errors import (
    AmbiguousComponentError,
    ComponentNotFoundError,
    InvalidStateError,
    NoSuchMessageError,
)
from stratum.events import ContextClosedEvent, ContextRefreshedEvent, SimpleEventPublisher
from stratum.factory import AutowireCapableFactory
from stratum.lifecycle import LifecycleGate, LifecycleState
from stratum.messages import StaticMessageResolver
from stratum.registry import ComponentProviderRegistry
from stratum.resources import Resource, StaticResourceResolver

__all__ = ["ApplicationContext"]

logger = logging.getLogger(__name__)


class ApplicationContext:
    """A hierarchical façade over a component registry and four capabilities.

    The context starts unrefreshed. :meth:`refresh` builds its components,
    injects declared capabilities into them and makes it active; :meth:`close`
    runs destroy callbacks and makes it inert. Identity accessors work in
    every state; lookups and capability operations need an active context and
    raise :class:`~stratum.errors.InvalidStateError` otherwise.

    Args:
        registry: Providers for the components local to this level.
        parent: The enclosing context, if any. Assigned once, here.
        context_id: Optional unique id.
        display_name: Human readable name; generated when omitted.
        application_name: Name of the deployed application.
        resource_resolver: Resource backend; in-memory and empty when omitted.
        event_publisher: Event backend; a :class:`SimpleEventPublisher` when omitted.
        message_resolver: Message backend; an empty :class:`StaticMessageResolver` when omitted.
        environment: Properties and profiles; process environment when
            omitted. Merged with the parent's environment.
        scope: Values for dependencies no provider or ancestor supplies.
        post_processors: Component transformers run after capability injection.
    """

    supports_autowiring = True

    def __init__(
        self,
        registry: Optional[ComponentProviderRegistry] = None,
        *,
        parent: Optional["ApplicationContext"] = None,
        context_id: Optional[str] = None,
        display_name: Optional[str] = None,
        application_name: str = "",
        resource_resolver: Optional[ResourceResolver] = None,
        event_publisher: Optional[EventPublisher] = None,
        message_resolver: Optional[MessageResolver] = None,
        environment: Optional[Environment] = None,
        scope: Optional[dict[str, Any]] = None,
        post_processors: Iterable[ComponentTransformer] = (),
    ):
        if parent is not None and not isinstance(parent, ApplicationContext):
            raise TypeError(f"parent must be an ApplicationContext, got {type(parent).__name__}")
        self._registry = registry if registry is not None else ComponentProviderRegistry()
        self._parent = parent
        self._id = context_id
        self._display_name = display_name or f"{type(self).__name__}@{id(self):x}"
        self._application_name = application_name
        self._resource_resolver: ResourceResolver = (
            resource_resolver if resource_resolver is not None else StaticResourceResolver()
        )
        self._event_publisher: EventPublisher = (
            event_publisher if event_publisher is not None else SimpleEventPublisher()
        )
        self._message_resolver: MessageResolver = (
            message_resolver if message_resolver is not None else StaticMessageResolver()
        )
        self._environment = (
            environment if environment is not None else Environment([EnvironPropertySource()])
        )
        if parent is not None:
            self._environment.merge(parent._environment)
        self._scope = scope
        self._transformers: list[ComponentTransformer] = [
            capability_injector(self),
            *post_processors,
        ]
        self._gate = LifecycleGate(self._display_name)
        self._bundle: Optional[Bundle] = None
        self._startup_date: Optional[datetime] = None

    @classmethod
    def from_settings(
        cls,
        registry: Optional[ComponentProviderRegistry] = None,
        settings: Optional[ContextSettings] = None,
        **kwargs,
    ) -> "ApplicationContext":
        """Create a context whose identity and profiles come from settings.

        Keyword arguments are passed to the constructor and take precedence.
        """
        settings = settings or get_settings()
        kwargs.setdefault("context_id", settings.context_id)
        kwargs.setdefault("display_name", settings.display_name)
        kwargs.setdefault("application_name", settings.application_name)
        kwargs.setdefault(
            "environment",
            Environment(
                [EnvironPropertySource()],
                active_profiles=settings.active_profiles,
                default_profiles=settings.default_profiles,
            ),
        )
        return cls(registry, **kwargs)

    # Identity

    @property
    def id(self) -> Optional[str]:
        return self._id

    @property
    def display_name(self) -> str:
        return self._display_name

    @property
    def application_name(self) -> str:
        return self._application_name

    @property
    def startup_date(self) -> datetime:
        """When the context became active.

        Raises:
            InvalidStateError: If the context has never been refreshed.
        """
        if self._startup_date is None:
            raise InvalidStateError(f"{self._display_name} has not been refreshed yet")
        return self._startup_date

    @property
    def parent(self) -> Optional["ApplicationContext"]:
        return self._parent

    @property
    def state(self) -> LifecycleState:
        return self._gate.state

    @property
    def is_active(self) -> bool:
        return self._gate.is_active

    # Lifecycle

    def refresh(self) -> None:
        """Build this level's components and make the context active.

        The parent, if any, must already be active. If building fails the
        context stays unrefreshed and the error propagates. A listener failing
        on the ``ContextRefreshedEvent`` is logged; the context is active by then.

        Raises:
            InvalidStateError: If the context is not unrefreshed, or its parent is not active.
            DependencyError: If the components cannot be resolved.
        """
        with self._gate.transition(LifecycleState.UNREFRESHED, LifecycleState.ACTIVE):
            logger.info(f"Refreshing {self._display_name}")
            parent_bundle = None
            if self._parent is not None:
                self._parent._gate.require_active(f"refresh child context {self._display_name}")
                parent_bundle = self._parent._bundle
            profiles = set(self._environment.effective_profiles)
            try:
                bundle = make_bundle(
                    self._registry,
                    profiles,
                    parent_bundle,
                    self._scope,
                    self._transformers,
                )
            except Exception:
                logger.error(f"Refresh of {self._display_name} failed", exc_info=True)
                raise
            self._bundle = bundle
            self._startup_date = datetime.now(timezone.utc)
            logger.info(
                f"{self._display_name} built {len(bundle.local_components())} component(s) "
                f"for profiles {sorted(profiles)}"
            )
        try:
            self.publish_event(ContextRefreshedEvent(self))
        except Exception as e:
            logger.warning(f"Listener failed handling refresh of {self._display_name}: {e}")

    def close(self) -> None:
        """Close the context. Closing an already closed context does nothing.

        A ``ContextClosedEvent`` is published while components are still
        available; destroy callbacks then run in reverse build order. The
        capability backends are shared and are left untouched.
        """
        with self._gate.exclusive() as state:
            if state is LifecycleState.CLOSED:
                logger.warning(f"{self._display_name} is already closed")
                return
            if state is LifecycleState.ACTIVE:
                try:
                    self.publish_event(ContextClosedEvent(self))
                except Exception as e:
                    logger.warning(f"Listener failed handling close of {self._display_name}: {e}")
            with self._gate.transition(state, LifecycleState.CLOSED):
                logger.info(f"Closing {self._display_name}")
            self._destroy_components()

    def _destroy_components(self) -> None:
        if self._bundle is None:
            return
        for component in reversed(self._bundle.local_components()):
            method_name = component.metadata.get("destroy")
            if not method_name:
                continue
            try:
                getattr(component.component, method_name)()
                logger.debug(f"Destroyed component '{component.name}'")
            except Exception as e:
                logger.warning(
                    f"Destroy method '{method_name}' of component '{component.name}' failed: {e}"
                )

    def __enter__(self) -> "ApplicationContext":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    # Component lookup

    def get_component(self, key: ComponentKey) -> Any:
        """Look up a component by name or type, here first and then in the ancestors.

        Raises:
            ComponentNotFoundError: If no level has the component.
            AmbiguousComponentError: If the nearest level providing a type has several.
            InvalidStateError: If this context or an ancestor consulted is not active.
        """
        return self._resolve(key, frozenset()).component

    def _local_components(self, operation: str) -> ComponentSet:
        """This level's components, once the gate allows ``operation``.

        The bundle is assigned before the context becomes active and kept
        after it closes, so it is never missing once the gate has passed.
        """
        self._gate.require_active(operation)
        return self._bundle.components

    def _resolve(self, key: ComponentKey, hidden: frozenset) -> MaterialisedComponent:
        local = self._local_components("look up components")
        if isinstance(key, str):
            if key in local.components:
                return local.components[key]
        else:
            candidates = [c for c in local.local_components_of_type(key) if c.name not in hidden]
            if len(candidates) > 1:
                raise AmbiguousComponentError(key, [c.name for c in candidates])
            if candidates:
                return candidates[0]
        if self._parent is None:
            raise ComponentNotFoundError(key)
        return self._parent._resolve(key, hidden.union(local.components))

    def contains_component(self, key: ComponentKey) -> bool:
        try:
            self._resolve(key, frozenset())
        except ComponentNotFoundError:
            return False
        except AmbiguousComponentError:
            return True
        return True

    def contains_local_component(self, name: str) -> bool:
        return name in self._local_components("look up components").components

    def component_names(self) -> list[str]:
        """Names visible from this context, local ones first, without duplicates."""
        names = list(self._local_components("list components").components)
        if self._parent is not None:
            local = set(names)
            names.extend(n for n in self._parent.component_names() if n not in local)
        return names

    def components_matching(
        self, predicate: Callable[[MaterialisedComponent], bool]
    ) -> dict[str, Any]:
        """Components from every level satisfying ``predicate``, keyed by name.

        A local component suppresses a same-named ancestor component.
        """
        return {
            component.name: component.component
            for component in self._materialised_matching(predicate, frozenset())
        }

    def components_of_type(self, component_type: type) -> dict[str, Any]:
        return self.components_matching(
            lambda component: component_type in component.declared_types
        )

    def _materialised_matching(self, predicate, hidden: frozenset) -> list[MaterialisedComponent]:
        local = self._local_components("list components").components
        matches = [
            component for name, component in local.items()
            if name not in hidden and predicate(component)
        ]
        if self._parent is not None:
            matches.extend(self._parent._materialised_matching(predicate, hidden.union(local)))
        return matches

    def __getitem__(self, key: ComponentKey) -> Any:
        return self.get_component(key)

    def __contains__(self, key: ComponentKey) -> bool:
        return self.contains_component(key)

    # Privileged factory access

    def get_autowire_capable_factory(self) -> AutowireCapableFactory:
        """Expose construction-time injection for objects the registry does not manage.

        Raises:
            InvalidStateError: If the context is not active, or this context
                type does not support autowiring.
        """
        if not self.supports_autowiring:
            raise InvalidStateError(
                f"{type(self).__name__} does not expose an autowire-capable factory"
            )
        self._gate.require_active("access the autowire-capable factory")
        return AutowireCapableFactory(self)

    def _post_process(self, component: MaterialisedComponent) -> MaterialisedComponent:
        return ComponentBuilder(self._transformers).transform(component)

    # Resources

    def get_resource(self, location: str) -> Resource:
        self._gate.require_active("resolve resources")
        return self._resource_resolver.get_resource(location)

    def get_resources(self, pattern: str) -> list[Resource]:
        self._gate.require_active("resolve resources")
        return self._resource_resolver.get_resources(pattern)

    # Events

    def publish_event(self, event: Any) -> None:
        """Deliver ``event`` to this context's listeners, then to each active ancestor's.

        Ancestors that have been closed are skipped.
        """
        self._gate.require_active("publish events")
        self._event_publisher.publish_event(event)
        ancestor = self._parent
        while ancestor is not None:
            if ancestor.is_active:
                ancestor._event_publisher.publish_event(event)
            else:
                logger.debug(
                    f"Not propagating {type(event).__name__} to {ancestor.display_name}: "
                    f"{ancestor.state.value}"
                )
            ancestor = ancestor._parent

    def add_listener(self, listener: Callable[[Any], None], event_type: Optional[type] = None) -> None:
        """Register a listener. Allowed before refresh, so refresh events can be observed."""
        if self._gate.is_closed:
            raise InvalidStateError(f"{self._display_name} has been closed - cannot add listeners")
        self._event_publisher.add_listener(listener, event_type)

    # Messages

    def get_message(
        self,
        key: str,
        args: Sequence[Any] = (),
        locale: Optional[str] = None,
        default: Optional[str] = None,
    ) -> str:
        """Resolve a message here, falling back to the parent context.

        ``default`` is only used when the caller supplies it.

        Raises:
            NoSuchMessageError: If no level resolves ``key`` and no default is given.
        """
        self._gate.require_active("resolve messages")
        try:
            return self._resolve_message(key, args, locale)
        except NoSuchMessageError:
            if default is None:
                raise
            return default.format(*args) if args else default

    def _resolve_message(self, key: str, args: Sequence[Any], locale: Optional[str]) -> str:
        try:
            return self._message_resolver.get_message(key, args, locale)
        except NoSuchMessageError:
            if self._parent is None:
                raise
            logger.debug(f"Message '{key}' not found in {self._display_name}, asking parent")
            return self._parent.get_message(key, args, locale)

    # Environment

    def get_property(self, key: str, default: Any = None) -> Any:
        self._gate.require_active("read properties")
        return self._environment.get_property(key, default)

    def get_required_property(self, key: str) -> Any:
        self._gate.require_active("read properties")
        return self._environment.get_required_property(key)

    @property
    def active_profiles(self) -> tuple[str, ...]:
        self._gate.require_active("read profiles")
        return self._environment.active_profiles

    def accepts_profiles(self, *profiles: str) -> bool:
        self._gate.require_active("read profiles")
        return self._environment.accepts_profiles(*profiles)

    # Capability backends

    @property
    def environment(self) -> Environment:
        """The environment; available before refresh so profiles can be configured."""
        if self._gate.is_closed:
            raise InvalidStateError(f"{self._display_name} has been closed - cannot access environment")
        return self._environment

    @property
    def resource_resolver(self) -> ResourceResolver:
        self._gate.require_active("access the resource resolver")
        return self._resource_resolver

    @property
    def event_publisher(self) -> EventPublisher:
        self._gate.require_active("access the event publisher")
        return self._event_publisher

    @property
    def message_resolver(self) -> MessageResolver:
        self._gate.require_active("access the message resolver")
        return self._message_resolver

    def __repr__(self):
        return (
            f"{type(self).__name__}(id={self._id!r}, display_name={self._display_name!r}, "
            f"state={self._gate.state.value})"
        )
