"""
Module for materialising component providers into a dependency-injected bundle.

A bundle is the resolved component registry of one context level. It is
built from a :class:`~stratum.bundle_manifest.BundleManifest` by invoking
each provider in dependency order and running the resulting components
through the builder's transformers (which is where the capability-injection
protocol happens).

Bundles may be layered via a parent-child relationship: a child bundle may
depend on components in its parent, but not vice versa, and the child's own
components shadow same-named components of the parent.
"""

from typing import Any, Callable, Union

from stratum.bundle_manifest import BundleManifest
from stratum.component_builder import ComponentBuilder
from stratum.component_set import ComponentSet
from stratum.domain import MaterialisedComponent

from stratum.errors import DependencyError

__all__ = ["Bundle", "BundleBuilder", "ComponentKey"]


ComponentKey = Union[str, type]
"""Type alias for keys used to look up components in a Bundle.

Components can be retrieved either by their string name or by their type.

Example:
    >>> bundle["database"]     # Lookup by name
    >>> bundle[Database]       # Lookup by type
"""


class Bundle:
    """
    A container of materialised components, resolved from a set of providers.

    Components are registered by unique name and by type. If a component is
    requested by type, the nearest level providing that type must provide a
    unique component of it; otherwise an AmbiguousComponentError is raised.
    """

    def __init__(self, components: ComponentSet):
        self.components = components

    def materialised(self, key: ComponentKey) -> MaterialisedComponent:
        if isinstance(key, str):
            return self.components[key]
        return self.components.resolve_type(key)

    def components_matching(
        self, predicate: Callable[[MaterialisedComponent], bool]
    ) -> list[MaterialisedComponent]:
        return self.components.components_matching(predicate)

    def local_components(self) -> list[MaterialisedComponent]:
        """Components defined at this level, in build order."""
        return list(self.components.components.values())

    def __getitem__(self, key: ComponentKey) -> Any:
        return self.materialised(key).component

    def __contains__(self, key: ComponentKey) -> bool:
        if isinstance(key, str):
            return key in self.components
        return len(self.components.components_of_type(key)) > 0


class BundleBuilder:
    """Instantiate components from a :class:`BundleManifest`."""

    def __init__(self, manifest: BundleManifest, component_builder: ComponentBuilder):
        self._manifest = manifest
        self._component_builder = component_builder

    def build(self, scope: dict[str, Any]) -> Bundle:
        """Materialise all components defined by the manifest.

        Args:
            scope: Mapping of dependency names to objects supplied by the caller.

        Returns:
            A :class:`Bundle` containing the instantiated components.

        Raises:
            DependencyError: If required scope items are missing.
        """
        required_from_scope = self._manifest.required_from_scope
        _validate_scoped_values(required_from_scope, scope.keys())

        built: dict[str, MaterialisedComponent] = {}
        parent = self._manifest.parent

        def get_component(name: str) -> Any:
            if name in built:
                return built[name].component
            if name in required_from_scope:
                return scope[name]
            return parent[name].component

        for component_name in self._manifest.build_order:
            resolved_provider = self._manifest.resolved_providers[component_name]

            looked_up_components = {
                dependency_name: get_component(dependency_name)
                for dependency_name in resolved_provider.resolved_dependencies.values()
            }

            built[component_name] = self._component_builder.build(
                resolved_provider, looked_up_components
            )

        return Bundle(ComponentSet(built, parent))


def _validate_scoped_values(required_from_scope, scope_keys):
    """Validate that the provided scope contains exactly the required items.

    Raises:
        DependencyError: If required items are missing or unexpected items are provided.
    """
    missing_from_scope = required_from_scope - scope_keys
    if missing_from_scope:
        raise DependencyError(f"Missing items {set(missing_from_scope)} from provided scope")

    extraneous = scope_keys - required_from_scope
    if extraneous:
        raise DependencyError(f"Unexpected items {set(extraneous)} in provided scope")
