"""Utilities for constructing MaterialisedComponent objects.

This module provides the ComponentBuilder class, which is responsible for
invoking component provider functions and transforming the results into
MaterialisedComponent instances. Transformers run after construction and
before the component is stored in its bundle; the owning context registers
its capability injector and any component post-processors here.
"""

import uuid
from functools import reduce
from typing import Callable, Any

from stratum.bundle_manifest import ResolvedComponentProvider
from stratum.domain import MaterialisedComponent

ComponentTransformer = Callable[[MaterialisedComponent], MaterialisedComponent]


class ComponentBuilder:
    """Build :class:`MaterialisedComponent` instances from providers."""

    def __init__(self, transformers: list[ComponentTransformer]):
        self._transformers = transformers

    def build(
        self, resolved_provider: ResolvedComponentProvider, dependencies: dict[str, Any]
    ) -> MaterialisedComponent:
        """Invoke a provider and apply transformers to the result.

        Args:
            resolved_provider: The provider being executed.
            dependencies: Mapping of dependency names to resolved components.

        Returns:
            The resulting :class:`MaterialisedComponent`.
        """
        call_kwargs = {
            parameter_name: dependencies[component_name]
            for parameter_name, component_name in resolved_provider.resolved_dependencies.items()
        }
        provider = resolved_provider.provider
        component_obj = provider.func(**call_kwargs)

        untransformed = MaterialisedComponent(
            uuid.uuid4(),
            provider.name,
            provider.provided_types,
            component_obj,
            list(dependencies.keys()),
            provider.metadata,
            provider.capabilities,
        )
        return self.transform(untransformed)

    def transform(self, component: MaterialisedComponent) -> MaterialisedComponent:
        return reduce(
            lambda current, transformer: transformer(current),
            self._transformers,
            component,
        )
