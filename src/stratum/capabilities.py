"""Narrow capability interfaces and the capability-injection protocol.

Consumers should depend on the narrowest interface they need. An
:class:`~stratum.context.ApplicationContext` satisfies all of them, as do the
default backends in :mod:`stratum.resources`, :mod:`stratum.events`,
:mod:`stratum.messages` and :mod:`stratum.environment`.

Components ask for references by declaring capabilities on their provider
(``registry.provides(aware=[...])`` or :func:`stratum.registry.aware`). The
owning context installs :func:`capability_injector` as the first component
transformer, so every declared setter runs once, after construction and
before the component is visible to anything else.
"""

import logging
from typing import (
    Any,
    Callable,
    Iterable,
    Optional,
    Protocol,
    Sequence,
    runtime_checkable,
)

from stratum.domain import Capability, MaterialisedComponent
from stratum.errors import DependencyError

__all__ = [
    "Capability",
    "ComponentLookup",
    "ResourceResolver",
    "EventPublisher",
    "MessageResolver",
    "EnvironmentProvider",
    "capability_injector",
    "inject_capabilities",
]

logger = logging.getLogger(__name__)


@runtime_checkable
class ComponentLookup(Protocol):
    def get_component(self, key: Any) -> Any:
        ...

    def contains_component(self, key: Any) -> bool:
        ...


@runtime_checkable
class ResourceResolver(Protocol):
    def get_resource(self, location: str) -> Any:
        ...

    def get_resources(self, pattern: str) -> list:
        ...


@runtime_checkable
class EventPublisher(Protocol):
    def publish_event(self, event: Any) -> None:
        ...

    def add_listener(self, listener: Callable[[Any], None], event_type: Optional[type] = None) -> None:
        ...


@runtime_checkable
class MessageResolver(Protocol):
    def get_message(
        self, key: str, args: Sequence[Any] = (), locale: Optional[str] = None
    ) -> str:
        ...


@runtime_checkable
class EnvironmentProvider(Protocol):
    def get_property(self, key: str, default: Any = None) -> Any:
        ...

    @property
    def active_profiles(self) -> tuple[str, ...]:
        ...


def inject_capabilities(
    target: Any, capabilities: Iterable[Capability], reference: Any, name: Optional[str] = None
) -> None:
    """Call the setter for each declared capability on ``target``.

    Setters run in :class:`Capability` declaration order, each at most once.

    Raises:
        DependencyError: If ``target`` lacks the setter for a declared capability.
    """
    declared = set(capabilities)
    label = name or type(target).__name__
    for capability in Capability:
        if capability not in declared:
            continue
        setter = getattr(target, capability.setter_name, None)
        if not callable(setter):
            raise DependencyError(
                f"Component '{label}' declares {capability.name} but has no "
                f"{capability.setter_name}() method"
            )
        logger.debug(f"Injecting {capability.name} into '{label}'")
        setter(reference)


def capability_injector(reference: Any) -> Callable[[MaterialisedComponent], MaterialisedComponent]:
    """Build a component transformer that injects ``reference`` for every declared capability."""
    def inject(component: MaterialisedComponent) -> MaterialisedComponent:
        if component.capabilities:
            inject_capabilities(
                component.component, component.capabilities, reference, component.name
            )
        return component

    return inject
