"""In-memory message lookup by key and locale.

Locales are plain strings (``"en_GB"``, ``"fr"``). A lookup for ``en_GB``
tries ``en_GB``, then ``en``, then the base messages registered under ``""``,
and finally the optional parent resolver. Templates are rendered with
:meth:`str.format` using the positional arguments supplied by the caller.
"""

import logging
from typing import Any, Iterator, Optional, Sequence

from stratum.capabilities import MessageResolver
from stratum.errors import NoSuchMessageError

__all__ = ["StaticMessageResolver", "locale_candidates"]

logger = logging.getLogger(__name__)


def locale_candidates(locale: str) -> Iterator[str]:
    """Yield ``locale`` and its progressively more general fallbacks, ending with ``""``."""
    current = locale.replace("-", "_")
    while current:
        yield current
        current = current.rpartition("_")[0]
    yield ""


class StaticMessageResolver:
    def __init__(
        self,
        messages: Optional[dict[str, dict[str, str]]] = None,
        default_locale: str = "",
        parent: Optional[MessageResolver] = None,
    ):
        """
        Args:
            messages: Templates keyed by locale, then by message key.
            default_locale: Locale used when the caller does not give one.
            parent: Resolver consulted when no template is found here.
        """
        self._templates: dict[tuple[str, str], str] = {}
        self.default_locale = default_locale
        self.parent = parent
        for locale, templates in (messages or {}).items():
            self.add_messages(locale, templates)

    def add_message(self, key: str, locale: str, template: str) -> None:
        self._templates[(key, locale.replace("-", "_"))] = template

    def add_messages(self, locale: str, templates: dict[str, str]) -> None:
        for key, template in templates.items():
            self.add_message(key, locale, template)

    def get_message(
        self, key: str, args: Sequence[Any] = (), locale: Optional[str] = None
    ) -> str:
        locale = self.default_locale if locale is None else locale
        for candidate in locale_candidates(locale):
            template = self._templates.get((key, candidate))
            if template is not None:
                return template.format(*args) if args else template
        if self.parent is not None:
            logger.debug(f"Message '{key}' not found locally, asking parent resolver")
            return self.parent.get_message(key, args, locale)
        raise NoSuchMessageError(key, locale)
