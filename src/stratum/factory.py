"""Construction-time injection for objects that live outside a context's registry.

:class:`AutowireCapableFactory` is handed out by
:meth:`ApplicationContext.get_autowire_capable_factory`. It gives external
objects the treatment managed components get during refresh: dependencies
resolved from the context hierarchy, declared capabilities injected, and the
context's post-processors applied. It stays bound to its context and refuses
to work once that context is no longer active.
"""

import inspect
import logging
import uuid
from typing import TYPE_CHECKING, Any, Callable, Iterable

from stratum.capabilities import Capability
from stratum.domain import MaterialisedComponent
from stratum.errors import ComponentNotFoundError
from stratum.registry import get_dependencies

if TYPE_CHECKING:
    from stratum.context import ApplicationContext

__all__ = ["AutowireCapableFactory"]

logger = logging.getLogger(__name__)


class AutowireCapableFactory:
    def __init__(self, context: "ApplicationContext"):
        self._context = context

    @property
    def context(self) -> "ApplicationContext":
        return self._context

    def autowire(self, obj: Any, aware: Iterable[Capability] = ()) -> Any:
        """Inject capabilities into ``obj`` and run the context's post-processors.

        Capabilities declared on the object's class with
        :func:`stratum.registry.aware` are injected along with ``aware``.

        Returns:
            The processed object; a post-processor may substitute another one.
        """
        self._context._gate.require_active("autowire external objects")
        declared = frozenset(getattr(type(obj), "__provider_capabilities__", ())) | frozenset(aware)
        unprocessed = MaterialisedComponent(
            uuid.uuid4(),
            type(obj).__name__,
            [type(obj)],
            obj,
            [],
            {},
            declared,
        )
        logger.debug(f"Autowiring external {type(obj).__name__} in {self._context.display_name}")
        return self._context._post_process(unprocessed).component

    def create(self, target: Callable, aware: Iterable[Capability] = (), **overrides: Any) -> Any:
        """Call ``target`` with dependencies resolved from the context, then autowire the result.

        Parameters are resolved the way provider parameters are: by the name
        given in ``Annotated[T, "name"]``, by type, or, when unannotated, by
        parameter name. Keyword ``overrides`` bypass resolution. A parameter
        that cannot be resolved but has a default keeps its default.

        Raises:
            ComponentNotFoundError: If a parameter without default cannot be resolved.
            AmbiguousComponentError: If a typed parameter has several candidates.
        """
        self._context._gate.require_active("create external objects")
        parameters = inspect.signature(target).parameters
        unexpected = overrides.keys() - parameters.keys()
        if unexpected:
            raise TypeError(f"{target.__name__} has no parameters {sorted(unexpected)}")
        kwargs: dict[str, Any] = {}
        for dependency in get_dependencies(target):
            name = dependency.parameter_name
            if name in overrides:
                kwargs[name] = overrides[name]
                continue
            key = dependency.component_name or dependency.declared_type
            try:
                kwargs[name] = self._context.get_component(key)
            except ComponentNotFoundError:
                if parameters[name].default is inspect.Parameter.empty:
                    raise
        return self.autowire(target(**kwargs), aware)
