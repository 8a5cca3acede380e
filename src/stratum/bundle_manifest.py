"""Utilities for constructing bundle build manifests.

This module provides the dependency resolution logic used when a context
level is refreshed. It analyzes provider dependencies, performs topological
sorting to determine build order, and creates manifests that describe how to
construct component bundles.

Resolution is local-first: a dependency that one of the level's own providers
satisfies is bound to that provider even if an ancestor level offers a
component with the same name or type. Only what the level cannot satisfy
itself is looked up in the parent, nearest ancestor first.
"""

from collections import deque, defaultdict
from dataclasses import dataclass
from typing import Optional, FrozenSet, Iterable

from stratum.component_set import ComponentSet
from stratum.errors import ComponentNotFoundError, DependencyError
from stratum.provider_set import ProviderSet
from stratum.registry import ComponentProvider


__all__ = ["ResolvedComponentProvider", "BundleManifest", "BundleManifestBuilder"]

@dataclass(frozen=True)
class ResolvedComponentProvider:
    provider: ComponentProvider
    resolved_dependencies: dict[str, str]

    @staticmethod
    def from_provider(
        provider: ComponentProvider, resolved_type_lookup: dict[type, str]
    ) -> "ResolvedComponentProvider":
        return ResolvedComponentProvider(provider, {
            dependency.parameter_name: (
                    dependency.component_name or resolved_type_lookup[dependency.declared_type]
            ) for dependency in provider.dependencies
        })


@dataclass(frozen=True)
class BundleManifest:
    """Description of how to build a :class:`~stratum.bundle.Bundle`."""

    parent: Optional[ComponentSet]
    """Components available from the parent bundle, if any."""

    required_from_scope: FrozenSet[str]
    """Names of dependencies that must be supplied by the caller."""

    resolved_providers: dict[str, ResolvedComponentProvider]
    """Provider functions keyed by the component name they produce."""

    build_order: list[str]
    """Ordered list of providers to invoke."""


class _DependencyGraph:
    """
    Internal helper to represent and traverse a directed acyclic graph of provider dependencies.

    Each node corresponds to a provider, and each edge indicates a required dependency.
    The graph supports topological traversal, raising an error if cycles remain.
    """

    def __init__(self):
        self._dependencies: dict[str, set[str]] = defaultdict(set)

    def add_dependencies(self, dependee: str, dependencies: Iterable[str]):
        self._dependencies[dependee].update(dependencies)

    def traverse(self):
        """
        Perform a topological traversal of the dependency graph.

        Yields:
            Provider names in an order where all dependencies of each node
            are yielded before the node itself.

        Raises:
            DependencyError: If any cycles or unsatisfied dependencies remain.
        """
        ready_to_materialise = deque(
            dependee
            for dependee, dependencies in self._dependencies.items()
            if len(dependencies) == 0
        )

        while len(ready_to_materialise) > 0:
            next_item = ready_to_materialise.popleft()
            yield next_item

            self._remove_dependency(next_item, ready_to_materialise)

        if len(self._dependencies) > 0:
            raise DependencyError(
                f"Unresolvable dependencies: {set(self._dependencies.keys())}"
            )

    def _remove_dependency(self, next_item, ready_to_materialise):
        del self._dependencies[next_item]

        for dependee, dependencies in self._dependencies.items():
            if len(dependencies) > 0:
                dependencies.discard(next_item)
                if len(dependencies) == 0:
                    ready_to_materialise.append(dependee)


class BundleManifestBuilder:
    """Resolve providers into a :class:`BundleManifest`."""

    def __init__(self, parent: Optional[ComponentSet]):
        self._parent = parent

    def build(self, provider_set: ProviderSet, require_complete: bool = True) -> BundleManifest:
        """Build a BundleManifest from a validated ProviderSet.

        Performs dependency resolution and topological sorting to determine
        the order in which providers should be invoked. Validates that all
        dependencies can be satisfied either by providers in the set, by
        the parent bundle, or by externally-supplied scope.

        Raises:
            DependencyError: If dependencies are missing or cyclic.
            AmbiguousComponentError: If a type dependency matches several
                parent components at the nearest level providing it.
        """
        resolved_type_lookup = self._resolve_type_dependencies(provider_set)
        required_from_scope = self._get_required_from_scope(provider_set)

        resolved_providers: dict[str, ResolvedComponentProvider] = {
            provider_name: ResolvedComponentProvider.from_provider(provider, resolved_type_lookup)
            for provider_name, provider in provider_set.providers_by_name.items()
        }

        build_order = list(
            self._build_dependency_graph(resolved_providers).traverse()
        )

        if require_complete and len(required_from_scope) > 0:
            raise DependencyError(
                f"Missing dependencies {required_from_scope} - "
                "to allow dependencies to be supplied by a transient scope, "
                "call build with require_complete set to False."
            )

        return BundleManifest(
            self._parent,
            required_from_scope,
            resolved_providers,
            build_order,
        )

    def _get_required_from_scope(self, provider_set) -> FrozenSet[str]:
        """Names that neither the provider set nor the parent bundle can supply."""
        return frozenset(
            {
                component_name
                for component_name in provider_set.unsatisfied_by_name_dependencies
                if component_name not in self._parent
            }
            if self._parent
            else provider_set.unsatisfied_by_name_dependencies
        )

    def _build_dependency_graph(
        self, resolved_providers: dict[str, ResolvedComponentProvider]
    ) -> _DependencyGraph:
        """
        Construct a dependency graph where each provider maps to the set of
        local provider names it depends on. Dependencies satisfied by the parent
        bundle or the scope are not edges.
        """
        dependency_graph: _DependencyGraph = _DependencyGraph()

        for provider_name, resolved_provider in resolved_providers.items():
            dependency_names = resolved_provider.resolved_dependencies.values()
            dependency_graph.add_dependencies(
                provider_name,
                (
                    dependency_name
                    for dependency_name in dependency_names
                    if dependency_name in resolved_providers
                ),
            )

        return dependency_graph

    def _resolve_type_dependencies(self, provider_set) -> dict[type, str]:
        if not self._parent:
            if len(provider_set.unsatisfied_by_type_dependencies) > 0:
                raise DependencyError(
                    f"Unsatisfied type dependencies: {[dep.__name__ for dep in provider_set.unsatisfied_by_type_dependencies]}"
                )
            return provider_set.resolved_type_dependencies

        local_names = frozenset(provider_set.providers_by_name)
        resolved_type_dependencies = dict(provider_set.resolved_type_dependencies)
        unsatisfied = []
        for unresolved_type in provider_set.unsatisfied_by_type_dependencies:
            try:
                candidate = self._parent.resolve_type(unresolved_type, hidden=local_names)
            except ComponentNotFoundError:
                unsatisfied.append(unresolved_type)
                continue
            resolved_type_dependencies[unresolved_type] = candidate.name

        if unsatisfied:
            raise DependencyError(
                f"Unsatisfied type dependencies: {[dep.__name__ for dep in unsatisfied]}"
            )

        return resolved_type_dependencies
