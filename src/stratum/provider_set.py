"""Helpers for managing sets of providers.

A context level is built from the providers its registry declares for the
active profiles. This module collects those providers into a validated set,
enforcing unique names within the level and resolving the type-based
dependencies the level can satisfy on its own. Anything left over must come
from an ancestor level or from the caller-supplied scope.
"""

from collections import defaultdict
from dataclasses import dataclass
from typing import FrozenSet, Optional

from stratum.domain import Dependency
from stratum.errors import AmbiguousComponentError, DependencyError
from stratum.registry import ComponentProvider

__all__ = ["ProviderSet", "make_provider_set"]


@dataclass(frozen=True)
class ProviderSet:
    """
    Represents a resolved set of component providers and their dependencies.

    Attributes:
        providers_by_name: Mapping from provider names to their ComponentProviders.
        resolved_type_dependencies: Mapping from types to provider names for type-based dependencies
            that were resolved within this provider set.
        unsatisfied_by_name_dependencies: Set of by-name dependencies that are not satisfied by the provider set.
        unsatisfied_by_type_dependencies: Set of by-type dependencies that are not satisfied by the provider set.
    """

    providers_by_name: dict[str, ComponentProvider]
    resolved_type_dependencies: dict[type, str]
    unsatisfied_by_name_dependencies: FrozenSet[str]
    unsatisfied_by_type_dependencies: FrozenSet[type]


def make_provider_set(
    providers: list[ComponentProvider],
    profiles: Optional[set[str]],
    require_complete: bool = True,
) -> ProviderSet:
    """
    Constructs a ProviderSet from a list of ComponentProviders and an active profile set.

    Validates that:
      - Each provider has a unique name.
      - Type-based dependencies do not refer to types for which multiple providers are available.

    Args:
        providers: List of ComponentProvider instances to include.
        profiles: Set of active profile names (used only for error context).
        require_complete: If True (default), then all providers' dependencies must be satisfiable by
            other providers in the resulting ProviderSet. If False, then dependencies may be satisfied
            by a parent context or transient scope.

    Raises:
        DependencyError: If provider names are duplicated or dependencies are unsatisfied.
        AmbiguousComponentError: If a type-based dependency matches multiple providers.
    """
    providers_by_name: dict[str, ComponentProvider] = _providers_by_unique_name(
        providers, profiles
    )

    by_name_dependencies = {
        dependency.component_name
        for provider in providers
        for dependency in provider.dependencies
        if dependency.component_name is not None
    }

    by_type_dependencies = _by_type_dependencies(providers)
    resolved_type_dependencies = _resolved_type_dependencies(by_type_dependencies, providers)

    unsatisfied_by_name_dependencies = by_name_dependencies - providers_by_name.keys()
    unsatisfied_by_type_dependencies = by_type_dependencies.keys() - resolved_type_dependencies.keys()

    if require_complete:
        if len(unsatisfied_by_name_dependencies) > 0 or len(unsatisfied_by_type_dependencies) > 0:
            unsatisfied = unsatisfied_by_name_dependencies.union(
                type.__name__ for type in unsatisfied_by_type_dependencies
            )
            raise DependencyError(
                f"Provider set has unsatisfied dependencies: {unsatisfied} - "
                "to allow dependencies to be supplied by a parent context or transient scope, "
                "call make_provider_set with require_complete set to False."
            )

    return ProviderSet(
        providers_by_name,
        resolved_type_dependencies,
        frozenset(unsatisfied_by_name_dependencies),
        frozenset(unsatisfied_by_type_dependencies)
    )


def _resolved_type_dependencies(by_type_dependencies, providers):
    """Resolve type-based dependencies to unique provider names.

    Returns:
        Dictionary mapping types to the unique provider names that satisfy them.

    Raises:
        AmbiguousComponentError: If multiple providers can satisfy the same type dependency.
    """
    providers_by_type: dict[type, set[str]] = defaultdict(set)
    for provider in providers:
        for provided_type in provider.provided_types:
            providers_by_type[provided_type].add(provider.name)

    resolved_type_dependencies: dict[type, str] = {}
    for depended_on_type in by_type_dependencies:
        provider_names = providers_by_type[depended_on_type]
        if len(provider_names) > 1:
            raise AmbiguousComponentError(depended_on_type, provider_names)
        if len(provider_names) == 1:
            resolved_type_dependencies[depended_on_type] = next(iter(provider_names))
    return resolved_type_dependencies


def _by_type_dependencies(providers):
    by_type_dependencies: dict[type, set[tuple[str, Dependency]]] = defaultdict(set)
    for provider in providers:
        for dependency in provider.dependencies:
            if dependency.component_name is None:
                by_type_dependencies[dependency.declared_type].add(
                    (provider.name, dependency)
                )
    return by_type_dependencies


def _providers_by_unique_name(
    providers: list[ComponentProvider], profiles: Optional[set[str]]
) -> dict[str, ComponentProvider]:
    providers_by_name = {}

    for provider in providers:
        provider_name = provider.name
        if provider_name in providers_by_name:
            raise DependencyError(
                f"Duplicate provider name '{provider_name}' "
                f"for providers {[p.name for p in providers]} "
                f"in profiles {profiles}"
            )
        providers_by_name[provider.name] = provider

    return providers_by_name
