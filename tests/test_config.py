import logging

import pytest
from pydantic import ValidationError

from stratum.config import ContextSettings, get_settings, setup_logging
from stratum.context import ApplicationContext
from stratum.environment import MapPropertySource


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch, tmp_path):
    monkeypatch.chdir(tmp_path)
    for variable in (
        "STRATUM_CONTEXT_ID",
        "STRATUM_DISPLAY_NAME",
        "STRATUM_APPLICATION_NAME",
        "STRATUM_ACTIVE_PROFILES",
        "STRATUM_DEFAULT_PROFILES",
        "STRATUM_LOG_LEVEL",
    ):
        monkeypatch.delenv(variable, raising=False)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


def test_defaults():
    settings = ContextSettings()

    assert settings.context_id is None
    assert settings.display_name is None
    assert settings.application_name == ""
    assert settings.active_profiles == []
    assert settings.default_profiles == ["default"]
    assert settings.log_level == "INFO"


def test_values_come_from_prefixed_environment(monkeypatch):
    monkeypatch.setenv("STRATUM_CONTEXT_ID", "orders")
    monkeypatch.setenv("STRATUM_APPLICATION_NAME", "shop")
    monkeypatch.setenv("STRATUM_ACTIVE_PROFILES", '["prod", "eu"]')
    monkeypatch.setenv("STRATUM_LOG_LEVEL", "debug")

    settings = get_settings()

    assert settings.context_id == "orders"
    assert settings.application_name == "shop"
    assert settings.active_profiles == ["prod", "eu"]
    assert settings.log_level == "DEBUG"


def test_values_come_from_dotenv_file(tmp_path):
    (tmp_path / ".env").write_text("STRATUM_DISPLAY_NAME=Order service\n")

    assert ContextSettings().display_name == "Order service"


def test_unknown_log_level_is_rejected():
    with pytest.raises(ValidationError, match="Unknown log level"):
        ContextSettings(log_level="chatty")


@pytest.mark.parametrize("profile", ["", "!prod"])
def test_invalid_profile_names_are_rejected(profile):
    with pytest.raises(ValidationError, match="Invalid profile name"):
        ContextSettings(active_profiles=[profile])


def test_get_settings_is_cached():
    assert get_settings() is get_settings()


def test_setup_logging_uses_settings_level(monkeypatch):
    configured = {}
    monkeypatch.setattr(logging, "basicConfig", lambda **kwargs: configured.update(kwargs))

    setup_logging(ContextSettings(log_level="warning"))

    assert configured["level"] == "WARNING"


def test_context_from_settings():
    settings = ContextSettings(
        context_id="orders",
        display_name="Order service",
        application_name="shop",
        active_profiles=["prod"],
    )

    context = ApplicationContext.from_settings(settings=settings)

    assert context.id == "orders"
    assert context.display_name == "Order service"
    assert context.application_name == "shop"
    assert context.environment.active_profiles == ("prod",)


def test_context_from_settings_keyword_arguments_take_precedence():
    settings = ContextSettings(context_id="orders")

    context = ApplicationContext.from_settings(settings=settings, context_id="billing")

    assert context.id == "billing"


def test_context_from_settings_reads_environment(monkeypatch):
    monkeypatch.setenv("STRATUM_CONTEXT_ID", "from-env")
    monkeypatch.setenv("STRATUM_DEFAULT_PROFILES", '["local"]')

    context = ApplicationContext.from_settings()
    context.environment.add_first(MapPropertySource("test", {"answer": 42}))
    context.refresh()

    assert context.id == "from-env"
    assert context.accepts_profiles("local")
    assert context.get_property("answer") == 42
