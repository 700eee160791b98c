import pytest

from config import DEFAULT_API_URL, DEFAULT_MODEL_VERSION, ConfigError, load_settings

BASE = {"TELEGRAM_BOT_TOKEN": "123:ABC", "REPLICATE_API_TOKEN": "r8_x"}


def test_defaults():
    settings = load_settings(dict(BASE))

    assert settings.port == 3000
    assert settings.public_domain is None
    assert settings.webhook_mode is False
    assert settings.webhook_url is None
    assert settings.replicate_model_version == DEFAULT_MODEL_VERSION
    assert settings.replicate_api_url == DEFAULT_API_URL
    assert settings.log_level == "INFO"


@pytest.mark.parametrize("missing", ["TELEGRAM_BOT_TOKEN", "REPLICATE_API_TOKEN"])
def test_missing_required_secret_is_fatal(missing):
    env = dict(BASE)
    env[missing] = "  "

    with pytest.raises(ConfigError, match=missing):
        load_settings(env)


def test_both_missing_are_reported():
    with pytest.raises(ConfigError) as excinfo:
        load_settings({})
    assert "TELEGRAM_BOT_TOKEN" in str(excinfo.value)
    assert "REPLICATE_API_TOKEN" in str(excinfo.value)


def test_port_override_and_validation():
    assert load_settings({**BASE, "PORT": "8080"}).port == 8080
    with pytest.raises(ConfigError, match="PORT"):
        load_settings({**BASE, "PORT": "eighty"})


@pytest.mark.parametrize(
    "domain",
    ["hooty.example.com", "https://hooty.example.com/", "http://hooty.example.com"],
)
def test_webhook_url_from_domain(domain):
    settings = load_settings({**BASE, "PUBLIC_DOMAIN": domain})

    assert settings.webhook_mode is True
    assert settings.webhook_url == "https://hooty.example.com/telegram/webhook"
