import pytest

from stratum.errors import NoSuchMessageError
from stratum.messages import StaticMessageResolver, locale_candidates


@pytest.fixture
def resolver():
    return StaticMessageResolver(
        {
            "": {"greeting": "Hello {0}", "farewell": "Bye"},
            "en_GB": {"colour": "colour"},
            "en": {"colour": "color", "greeting": "Hi {0}"},
            "fr": {"greeting": "Bonjour {0}"},
        }
    )


def test_locale_candidates_walk_from_specific_to_base():
    assert list(locale_candidates("en_GB")) == ["en_GB", "en", ""]
    assert list(locale_candidates("pt-BR")) == ["pt_BR", "pt", ""]
    assert list(locale_candidates("")) == [""]


def test_lookup_uses_most_specific_locale(resolver):
    assert resolver.get_message("colour", locale="en_GB") == "colour"
    assert resolver.get_message("colour", locale="en_US") == "color"
    assert resolver.get_message("greeting", ["Ada"], locale="en_GB") == "Hi Ada"
    assert resolver.get_message("greeting", ["Ada"], locale="fr") == "Bonjour Ada"


def test_lookup_falls_back_to_base_messages(resolver):
    assert resolver.get_message("greeting", ["Ada"]) == "Hello Ada"
    assert resolver.get_message("farewell", locale="de") == "Bye"


def test_template_is_returned_verbatim_without_arguments(resolver):
    assert resolver.get_message("greeting") == "Hello {0}"


def test_default_locale_is_used_when_none_given():
    resolver = StaticMessageResolver({"fr": {"yes": "oui"}, "": {"yes": "yes"}}, default_locale="fr")

    assert resolver.get_message("yes") == "oui"
    assert resolver.get_message("yes", locale="") == "yes"


def test_missing_message_raises(resolver):
    with pytest.raises(NoSuchMessageError, match="code 'missing' for locale 'fr'") as raised:
        resolver.get_message("missing", locale="fr")
    assert raised.value.key == "missing"
    assert raised.value.locale == "fr"


def test_parent_resolver_is_consulted_last():
    parent = StaticMessageResolver({"": {"shared": "from parent {0}", "own": "parent own"}})
    child = StaticMessageResolver({"": {"own": "child own"}}, parent=parent)

    assert child.get_message("own") == "child own"
    assert child.get_message("shared", ["x"]) == "from parent x"
    with pytest.raises(NoSuchMessageError):
        child.get_message("missing")


def test_messages_can_be_added_after_construction():
    resolver = StaticMessageResolver()
    resolver.add_message("title", "en-GB", "Shop")
    resolver.add_messages("", {"title": "Store"})

    assert resolver.get_message("title", locale="en_GB") == "Shop"
    assert resolver.get_message("title") == "Store"
