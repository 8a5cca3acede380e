"""Container for resolved components with optional parent lookup.

Provides hierarchical component lookup, allowing child component sets to
inherit components from parent sets. Local components always take priority:
a child may define a component with the same name or type as one of its
ancestors, and the child's definition then shadows the ancestor's for the
child and everything below it.

The component set acts as a dictionary-like container where components are
accessed by name, with automatic fallback to parent components when a
component is not found locally.
"""
from collections import defaultdict
from typing import Callable, FrozenSet, Iterator, Optional

from stratum.domain import MaterialisedComponent
from stratum.errors import AmbiguousComponentError, ComponentNotFoundError


class ComponentSet:
    """Collection of components with hierarchical lookup.

    Attributes:
        components: Dictionary mapping component names to MaterialisedComponent
            instances defined at this level.
        parent: Optional parent ComponentSet for hierarchical lookup.

    Example:
        >>> global_components = ComponentSet({"db": db_component})
        >>> request_components = ComponentSet({"service": service_component}, global_components)
        >>> request_components["db"]  # Found in parent
        >>> request_components["service"]  # Found locally
    """

    def __init__(
        self,
        components: dict[str, MaterialisedComponent],
        parent: Optional["ComponentSet"] = None,
    ):
        self.components = components
        self.parent = parent
        self._components_by_type: dict[type, list[MaterialisedComponent]] = defaultdict(list)
        for component in components.values():
            for declared_type in component.declared_types:
                self._components_by_type[declared_type].append(component)

    def local_components_of_type(self, component_type: type) -> list[MaterialisedComponent]:
        return list(self._components_by_type.get(component_type, ()))

    def components_of_type(self, component_type: type) -> list[MaterialisedComponent]:
        """All components of the given type visible from this level, nearest first."""
        return self.components_matching(
            lambda component: component_type in component.declared_types
        )

    def components_matching(
        self, predicate: Callable[[MaterialisedComponent], bool]
    ) -> list[MaterialisedComponent]:
        """Components satisfying ``predicate`` across the hierarchy.

        A local component suppresses any same-named ancestor component, whether
        or not the ancestor's one matches.
        """
        seen: set[str] = set()
        matches: list[MaterialisedComponent] = []
        for level in self.levels():
            for name, component in level.components.items():
                if name in seen:
                    continue
                seen.add(name)
                if predicate(component):
                    matches.append(component)
        return matches

    def resolve_type(
        self, component_type: type, hidden: FrozenSet[str] = frozenset()
    ) -> MaterialisedComponent:
        """Find the unique component of a type at the nearest level that has any.

        Components whose names are in ``hidden``, or are shadowed by a nearer
        level, are not candidates.

        Raises:
            AmbiguousComponentError: If the nearest level has several candidates.
            ComponentNotFoundError: If no level provides the type.
        """
        for level in self.levels():
            candidates = [
                c for c in level.local_components_of_type(component_type)
                if c.name not in hidden
            ]
            if len(candidates) > 1:
                raise AmbiguousComponentError(component_type, [c.name for c in candidates])
            if candidates:
                return candidates[0]
            hidden = frozenset(hidden).union(level.components)
        raise ComponentNotFoundError(component_type)

    def names(self) -> list[str]:
        names: dict[str, None] = {}
        for level in self.levels():
            names.update(dict.fromkeys(level.components))
        return list(names)

    def levels(self) -> Iterator["ComponentSet"]:
        level = self
        while level is not None:
            yield level
            level = level.parent

    def __getitem__(self, item: str) -> MaterialisedComponent:
        for level in self.levels():
            if item in level.components:
                return level.components[item]
        raise ComponentNotFoundError(item)

    def __contains__(self, item: str) -> bool:
        return any(item in level.components for level in self.levels())
