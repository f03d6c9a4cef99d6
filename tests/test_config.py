import pytest

from notes_website.client.config import Settings, load_settings
from notes_website.client.domain import ConfigError

VALID = {"SUPABASE_URL": "https://abc.supabase.co", "SUPABASE_ANON_KEY": "anon-key"}


def test_load_settings_reads_credentials_and_defaults():
    settings = load_settings(VALID)
    assert settings.supabase_url == "https://abc.supabase.co"
    assert settings.supabase_anon_key == "anon-key"
    assert settings.notes_table == "notes"
    assert settings.signup_redirect_delay == 2.0
    assert settings.message_ttl == 5.0
    assert settings.origin == "http://127.0.0.1:8000"


def test_load_settings_overrides_from_environment():
    env = dict(VALID, NOTES_PORT="9000", NOTES_TABLE="journal", NOTES_MESSAGE_TTL="1.5")
    settings = load_settings(env)
    assert settings.port == 9000
    assert settings.notes_table == "journal"
    assert settings.message_ttl == 1.5


@pytest.mark.parametrize("env", [{}, {"SUPABASE_URL": "https://abc.supabase.co"}, {"SUPABASE_ANON_KEY": "k"}])
def test_missing_credentials_are_refused(env):
    with pytest.raises(ConfigError, match="Supabase URL and Key are required"):
        load_settings(env)


@pytest.mark.parametrize(
    "env",
    [
        {"SUPABASE_URL": "YOUR_SUPABASE_URL", "SUPABASE_ANON_KEY": "anon-key"},
        {"SUPABASE_URL": "https://abc.supabase.co", "SUPABASE_ANON_KEY": "YOUR_SUPABASE_ANON_KEY"},
    ],
)
def test_placeholder_credentials_are_refused(env):
    with pytest.raises(ConfigError, match="actual Supabase credentials"):
        load_settings(env)


def test_malformed_values_are_configuration_errors():
    with pytest.raises(ConfigError, match="port"):
        load_settings(dict(VALID, NOTES_PORT="eighty"))


def test_memory_backend_needs_no_credentials():
    settings = load_settings({"NOTES_BACKEND": "memory"})
    assert settings.backend == "memory"


def test_blank_variables_keep_defaults():
    settings = load_settings(dict(VALID, NOTES_HOST="  "))
    assert settings.host == Settings().host


def test_log_level_is_normalised():
    assert load_settings(dict(VALID, NOTES_LOG_LEVEL="debug")).log_level == "DEBUG"


def test_unknown_log_level_is_a_configuration_error():
    with pytest.raises(ConfigError, match="log_level"):
        load_settings(dict(VALID, NOTES_LOG_LEVEL="verbose"))
