from dataclasses import dataclass
from typing import Callable, Any, Annotated

import pytest

from stratum.builders import make_bundle
from stratum.errors import AmbiguousComponentError, ComponentNotFoundError, DependencyError
from stratum.registry import ComponentProviderRegistry

DB = Callable[[str], dict[str, Any]]


class Printer:
    def print(self, line):
        pass


class MockPrinter(Printer):
    def __init__(self):
        self.printed = []

    def print(self, user_details):
        for k, v in user_details.items():
            self.printed.append(f"{k}: {v}")


@dataclass(frozen=True)
class Service:
    db: DB
    printer: Printer

    def print_user_details(self, user_id):
        user_details = self.db(user_id)
        self.printer.print(user_details)


@pytest.fixture
def registry() -> ComponentProviderRegistry:
    registry = ComponentProviderRegistry()

    @registry.provides(profiles=["test"])
    def make_test_db() -> DB:
        def db(_user_id: str) -> dict[str, Any]:
            return {"name": "Arthur Putey", "age": 42}

        return db

    @registry.provides(profiles=["uat"])
    def make_uat_db() -> DB:
        def db(_user_id: str) -> dict:
            return {"name": "Gawain of Camelot", "age": 23}

        return db

    registry.provides(profiles=["test"])(MockPrinter)
    registry.provides()(Service)

    return registry


def test_build_resolving_by_declared_type(registry):
    bundle = make_bundle(registry, {"test"})
    service = bundle[Service]
    printer = bundle[Printer]
    service.print_user_details("id123")

    assert printer.printed == ["name: Arthur Putey", "age: 42"]


def test_resolve_by_qualifier():
    registry = ComponentProviderRegistry()

    @registry.provides(name="foo")
    def make_foo() -> str:
        return "foo"

    @registry.provides(name="bar")
    def make_bar() -> str:
        return "bar"

    @registry.provides()
    def make_concat(foo: Annotated[str, "foo"], bar: Annotated[str, "bar"]) -> str:
        return foo + bar

    bundle = make_bundle(registry)
    assert bundle["concat"] == "foobar"


def test_dependency_cycle_detected():
    registry = ComponentProviderRegistry()

    @registry.provides(name="a")
    def make_a(b: Annotated[int, "b"]) -> int:
        return b + 1

    @registry.provides(name="b")
    def make_b(a: Annotated[int, "a"]) -> int:
        return a + 1

    with pytest.raises(DependencyError, match="Unresolvable dependencies"):
        make_bundle(registry)


def test_missing_dependency_raises():
    registry = ComponentProviderRegistry()

    @registry.provides()
    def make_service(printer: Printer) -> Service:
        return ...

    with pytest.raises(
        DependencyError,
        match="Provider set has unsatisfied dependencies: {'Printer'}",
    ):
        make_bundle(registry)


def test_name_conflict_between_profiles_raises():
    registry = ComponentProviderRegistry()

    @registry.provides(name="x", profiles=["a"])
    def x_a() -> int:
        return 1

    @registry.provides(name="x", profiles=["b"])
    def x_b() -> int:
        return 2

    with pytest.raises(DependencyError, match="Duplicate provider name 'x'"):
        make_bundle(registry, {"a", "b"})


def test_child_bundle_resolves_from_parent():
    global_registry = ComponentProviderRegistry()
    kid_a_registry = ComponentProviderRegistry()
    kid_b_registry = ComponentProviderRegistry()
    arithmetic_registry = ComponentProviderRegistry()

    @global_registry.provides("lhs")
    def global_lhs() -> int:
        return 42

    @kid_a_registry.provides("rhs")
    def kid_a() -> int:
        return 23

    @kid_b_registry.provides("rhs")
    def kid_b() -> int:
        return 19

    @arithmetic_registry.provides("result")
    def adder(a: Annotated[int, "lhs"], b: Annotated[int, "rhs"]) -> int:
        return a + b

    global_bundle = make_bundle(global_registry)

    kid_a_bundle = make_bundle(kid_a_registry, parent=global_bundle)
    kid_b_bundle = make_bundle(kid_b_registry, parent=global_bundle)

    adder_a_bundle = make_bundle(arithmetic_registry, parent=kid_a_bundle)
    adder_b_bundle = make_bundle(arithmetic_registry, parent=kid_b_bundle)

    assert adder_a_bundle["result"] == 65
    assert adder_b_bundle["result"] == 61


def test_child_component_shadows_parent_component_of_same_name():
    parent_registry = ComponentProviderRegistry()
    child_registry = ComponentProviderRegistry()

    @parent_registry.provides("it")
    def parent() -> int:
        return 23

    @parent_registry.provides("other")
    def other() -> str:
        return "from parent"

    @child_registry.provides("it")
    def child() -> int:
        return 42

    parent_bundle = make_bundle(parent_registry)
    child_bundle = make_bundle(child_registry, parent=parent_bundle)

    assert child_bundle["it"] == 42
    assert child_bundle["other"] == "from parent"
    assert parent_bundle["it"] == 23


def test_child_dependency_on_shadowed_name_uses_child_component():
    parent_registry = ComponentProviderRegistry()
    child_registry = ComponentProviderRegistry()

    @parent_registry.provides("greeting")
    def parent_greeting() -> str:
        return "hello"

    @child_registry.provides("greeting")
    def child_greeting() -> str:
        return "bonjour"

    @child_registry.provides("message")
    def make_message(greeting: Annotated[str, "greeting"]) -> list:
        return [greeting]

    child_bundle = make_bundle(child_registry, parent=make_bundle(parent_registry))

    assert child_bundle["message"] == ["bonjour"]


def test_keyword_only_dependency():
    registry = ComponentProviderRegistry()

    @registry.provides("foo")
    def make_foo() -> str:
        return "foo"

    @registry.provides("bar")
    def make_bar(*, foo: Annotated[str, "foo"]) -> str:
        return f"bar-{foo}"

    bundle = make_bundle(registry)
    assert bundle["bar"] == "bar-foo"


def test_scope_supplies_required_dependencies():
    registry = ComponentProviderRegistry()

    @registry.provides("result")
    def make_result(lhs: Annotated[int, "lhs"], rhs: Annotated[int, "rhs"]) -> int:
        return lhs + rhs

    bundle = make_bundle(registry, scope={"lhs": 2, "rhs": 3})

    assert bundle["result"] == 5


def test_scope_missing_dependency_raises():
    registry = ComponentProviderRegistry()

    @registry.provides("result")
    def make_result(lhs: Annotated[int, "lhs"]) -> int:
        return lhs

    with pytest.raises(DependencyError, match="Missing items {'lhs'}"):
        make_bundle(registry, scope={})


def test_scope_extraneous_dependency_raises():
    registry = ComponentProviderRegistry()

    @registry.provides("result")
    def make_result(lhs: Annotated[int, "lhs"]) -> int:
        return lhs

    with pytest.raises(DependencyError, match="Unexpected items {'foo'}"):
        make_bundle(registry, scope={"lhs": 1, "foo": 2})


def test_type_dependency_resolves_to_nearest_level():
    parent_registry = ComponentProviderRegistry()
    child_registry = ComponentProviderRegistry()
    consumer_registry = ComponentProviderRegistry()

    class Printer:
        def __init__(self, prefix):
            self.prefix = prefix

    @parent_registry.provides("parent_printer")
    def make_parent_printer() -> Printer:
        return Printer("parent")

    @child_registry.provides("child_printer")
    def make_child_printer() -> Printer:
        return Printer("child")

    @consumer_registry.provides("service")
    def make_service(printer: Printer) -> str:
        return printer.prefix

    parent_bundle = make_bundle(parent_registry)
    child_bundle = make_bundle(child_registry, parent=parent_bundle)

    assert make_bundle(consumer_registry, parent=child_bundle)["service"] == "child"
    assert make_bundle(consumer_registry, parent=parent_bundle)["service"] == "parent"


def test_local_provider_satisfies_type_dependency_before_parent():
    parent_registry = ComponentProviderRegistry()
    child_registry = ComponentProviderRegistry()

    class Service:
        def __init__(self, origin):
            self.origin = origin

    @parent_registry.provides("parent_service")
    def make_parent_service() -> Service:
        return Service("parent")

    @child_registry.provides("child_service")
    def make_child_service() -> Service:
        return Service("child")

    @child_registry.provides("consumer")
    def make_consumer(service: Service) -> str:
        return service.origin

    child_bundle = make_bundle(child_registry, parent=make_bundle(parent_registry))

    assert child_bundle["consumer"] == "child"


def test_raises_if_nearest_level_has_several_candidates_for_type():
    parent_registry = ComponentProviderRegistry()
    consumer_registry = ComponentProviderRegistry()

    class Printer:
        pass

    @parent_registry.provides("first")
    def make_first() -> Printer:
        return Printer()

    @parent_registry.provides("second")
    def make_second() -> Printer:
        return Printer()

    @consumer_registry.provides("service")
    def make_service(printer: Printer) -> str:
        return "unreachable"

    parent_bundle = make_bundle(parent_registry)

    with pytest.raises(AmbiguousComponentError, match="No unique component found for type Printer"):
        make_bundle(consumer_registry, parent=parent_bundle)


def test_parent_component_hidden_by_child_name_is_not_a_type_candidate():
    parent_registry = ComponentProviderRegistry()
    child_registry = ComponentProviderRegistry()

    class Clock:
        pass

    @parent_registry.provides("clock")
    def make_clock() -> Clock:
        return Clock()

    @child_registry.provides("clock")
    def make_fake_clock() -> str:
        return "not a clock"

    @child_registry.provides("consumer")
    def make_consumer(clock: Clock) -> str:
        return "unreachable"

    with pytest.raises(DependencyError, match="Unsatisfied type dependencies: \\['Clock'\\]"):
        make_bundle(child_registry, parent=make_bundle(parent_registry))


def test_lookup_by_type_raises_for_ambiguous_components():
    registry = ComponentProviderRegistry()

    @registry.provides("a")
    def make_a() -> int:
        return 1

    @registry.provides("b")
    def make_b() -> int:
        return 2

    bundle = make_bundle(registry)

    with pytest.raises(AmbiguousComponentError):
        bundle[int]
    assert int in bundle


def test_lookup_of_missing_component_raises_not_found():
    bundle = make_bundle(ComponentProviderRegistry())

    with pytest.raises(ComponentNotFoundError, match="No component found for name 'missing'"):
        bundle["missing"]
    with pytest.raises(KeyError):
        bundle[float]
    assert "missing" not in bundle


def test_transformers_run_in_order_after_construction():
    registry = ComponentProviderRegistry()
    seen = []

    @registry.provides("numbers")
    def make_numbers() -> list:
        return [1]

    def append(value):
        def transform(component):
            seen.append((component.name, value))
            component.component.append(value)
            return component

        return transform

    bundle = make_bundle(registry, transformers=[append(2), append(3)])

    assert bundle["numbers"] == [1, 2, 3]
    assert seen == [("numbers", 2), ("numbers", 3)]


def test_components_matching_suppresses_shadowed_parent_components():
    parent_registry = ComponentProviderRegistry()
    child_registry = ComponentProviderRegistry()

    @parent_registry.provides("a")
    def parent_a() -> int:
        return 1

    @parent_registry.provides("b")
    def parent_b() -> int:
        return 2

    @child_registry.provides("a")
    def child_a() -> str:
        return "shadow"

    child_bundle = make_bundle(child_registry, parent=make_bundle(parent_registry))

    ints = child_bundle.components_matching(lambda c: int in c.declared_types)
    assert [c.name for c in ints] == ["b"]
    assert child_bundle.components.names() == ["a", "b"]
