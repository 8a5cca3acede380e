"""In-memory resource resolution.

Resources are registered up front under a location string; lookups match
either the exact location or a shell-style pattern (``config/*.yaml``).
"""

import fnmatch
import logging
from dataclasses import dataclass
from typing import Optional, Union

from stratum.errors import ResourceNotFoundError

__all__ = ["Resource", "StaticResourceResolver"]

logger = logging.getLogger(__name__)

_WILDCARDS = frozenset("*?[")


@dataclass(frozen=True)
class Resource:
    location: str
    content: bytes
    description: Optional[str] = None

    def text(self, encoding: str = "utf-8") -> str:
        return self.content.decode(encoding)


class StaticResourceResolver:
    """Resolve resources from a fixed mapping of location to content."""

    def __init__(self, resources: Optional[dict[str, Union[str, bytes]]] = None):
        self._resources: dict[str, Resource] = {}
        for location, content in (resources or {}).items():
            self.add(location, content)

    def add(self, location: str, content: Union[str, bytes], description: Optional[str] = None) -> Resource:
        if isinstance(content, str):
            content = content.encode("utf-8")
        resource = Resource(location, content, description or f"static resource [{location}]")
        self._resources[location] = resource
        return resource

    def get_resource(self, location: str) -> Resource:
        try:
            return self._resources[location]
        except KeyError:
            raise ResourceNotFoundError(location) from None

    def get_resources(self, pattern: str) -> list[Resource]:
        """Resources matching ``pattern``, sorted by location.

        A pattern without wildcards names a single resource and raises
        ResourceNotFoundError when it is absent; a wildcard pattern that
        matches nothing returns an empty list.
        """
        if not _WILDCARDS.intersection(pattern):
            return [self.get_resource(pattern)]
        matches = [
            self._resources[location]
            for location in sorted(self._resources)
            if fnmatch.fnmatchcase(location, pattern)
        ]
        logger.debug(f"Pattern '{pattern}' matched {len(matches)} resource(s)")
        return matches
