"""Environment: ordered property sources plus profiles.

Property sources are searched in order and the first one holding a key wins.
Profiles follow the registry's matching rules, so ``"!test"`` accepts any
environment where ``test`` is not active. When no profile is active the
default profiles (``("default",)`` unless configured) are in effect.
"""

import logging
import os
from typing import Any, Iterable, Mapping, Optional, Union, IO

import yaml

from stratum.errors import PropertyNotFoundError
from stratum.registry import profiles_match

__all__ = [
    "PropertySource",
    "MapPropertySource",
    "EnvironPropertySource",
    "YamlPropertySource",
    "Environment",
]

logger = logging.getLogger(__name__)

_MISSING = object()


class PropertySource:
    def __init__(self, name: str):
        self.name = name

    def get(self, key: str, default: Any = None) -> Any:
        raise NotImplementedError

    def __contains__(self, key: str) -> bool:
        return self.get(key, _MISSING) is not _MISSING

    def __repr__(self):
        return f"{type(self).__name__}({self.name!r})"


class MapPropertySource(PropertySource):
    def __init__(self, name: str, properties: Mapping[str, Any]):
        super().__init__(name)
        self.properties = properties

    def get(self, key: str, default: Any = None) -> Any:
        return self.properties.get(key, default)


class EnvironPropertySource(MapPropertySource):
    """Process environment variables.

    ``app.cache-size`` also matches ``APP_CACHE_SIZE``.
    """

    def __init__(self, name: str = "environ", environ: Optional[Mapping[str, str]] = None):
        super().__init__(name, os.environ if environ is None else environ)

    def get(self, key: str, default: Any = None) -> Any:
        for candidate in (key, key.replace(".", "_").replace("-", "_").upper()):
            if candidate in self.properties:
                return self.properties[candidate]
        return default


class YamlPropertySource(MapPropertySource):
    """Properties read from a YAML document, nested mappings flattened to dotted keys."""

    @classmethod
    def from_yaml(cls, name: str, document: Union[str, bytes, IO]) -> "YamlPropertySource":
        loaded = yaml.safe_load(document) or {}
        if not isinstance(loaded, dict):
            raise ValueError(f"YAML property source '{name}' must contain a mapping at the top level")
        return cls(name, _flatten(loaded))


def _flatten(mapping: Mapping[str, Any], prefix: str = "") -> dict[str, Any]:
    flat: dict[str, Any] = {}
    for key, value in mapping.items():
        dotted = f"{prefix}{key}"
        if isinstance(value, dict):
            flat.update(_flatten(value, f"{dotted}."))
        else:
            flat[dotted] = value
    return flat


class Environment:
    def __init__(
        self,
        property_sources: Iterable[PropertySource] = (),
        active_profiles: Iterable[str] = (),
        default_profiles: Iterable[str] = ("default",),
    ):
        self._sources: list[PropertySource] = list(property_sources)
        self._active_profiles: tuple[str, ...] = tuple(dict.fromkeys(active_profiles))
        self._default_profiles: tuple[str, ...] = tuple(default_profiles)

    @property
    def property_sources(self) -> tuple[PropertySource, ...]:
        return tuple(self._sources)

    def add_first(self, source: PropertySource) -> None:
        self._sources.insert(0, source)

    def add_last(self, source: PropertySource) -> None:
        self._sources.append(source)

    def get_property(self, key: str, default: Any = None) -> Any:
        for source in self._sources:
            value = source.get(key, _MISSING)
            if value is not _MISSING:
                return value
        return default

    def get_required_property(self, key: str) -> Any:
        value = self.get_property(key, _MISSING)
        if value is _MISSING:
            raise PropertyNotFoundError(key)
        return value

    def contains_property(self, key: str) -> bool:
        return any(key in source for source in self._sources)

    @property
    def active_profiles(self) -> tuple[str, ...]:
        return self._active_profiles

    @property
    def default_profiles(self) -> tuple[str, ...]:
        return self._default_profiles

    @property
    def effective_profiles(self) -> frozenset[str]:
        return frozenset(self._active_profiles or self._default_profiles)

    def accepts_profiles(self, *profiles: str) -> bool:
        """True if any of ``profiles`` (``!``-negation allowed) matches the effective profiles."""
        effective = self.effective_profiles
        return any(profiles_match([profile], effective) for profile in profiles)

    def merge(self, parent: "Environment") -> None:
        """Append the parent's property sources and active profiles not already present."""
        names = {source.name for source in self._sources}
        for source in parent.property_sources:
            if source.name not in names:
                self._sources.append(source)
        self._active_profiles = tuple(
            dict.fromkeys(self._active_profiles + parent.active_profiles)
        )
        logger.debug(
            f"Merged parent environment: {len(self._sources)} source(s), "
            f"active profiles {list(self._active_profiles)}"
        )
