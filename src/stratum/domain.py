"""Domain models used throughout the framework."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional
from uuid import UUID


class Capability(Enum):
    """A reference a managed component may ask its owning context to inject.

    Each member names the setter the component must expose. Setters are
    called in the order the members are listed here, once per member,
    whatever order the component declared them in.
    """

    CONTEXT = "set_context"
    RESOURCES = "set_resource_resolver"
    EVENTS = "set_event_publisher"
    MESSAGES = "set_message_resolver"
    ENVIRONMENT = "set_environment"

    @property
    def setter_name(self) -> str:
        return self.value


@dataclass(frozen=True)
class Dependency:
    """Represents a dependency required by a component.

    Attributes:
        parameter_name: The parameter name of the dependency in the component builder's function signature.
        declared_type: The expected type of the dependency.
        component_name: The name of the component that fulfils this dependency.
    """

    parameter_name: str
    declared_type: Optional[type]
    component_name: Optional[str]


@dataclass(frozen=True)
class MaterialisedComponent:
    """
    Represents a resolved and instantiated component.

    Attributes:
        id: The unique id of this component instance.
        name: The provider name.
        declared_types: List of types this component can satisfy.
        component: The instantiated component object.
        dependencies: A list of provider names or keys this component depends on.
        metadata: Optional metadata declared on the provider.
        capabilities: Capabilities the component asked to have injected.
    """

    id: UUID
    name: str
    declared_types: list[type]
    component: Any
    dependencies: list[str]
    metadata: dict[str, Any]
    capabilities: frozenset[Capability] = field(default_factory=frozenset)
