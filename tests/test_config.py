"""Tests for INI configuration loading."""

import pytest

from onelogin_aws.config import get_app_config, get_provider_config, load_config
from onelogin_aws.errors import ConfigError

VALID_CONFIG = """
[provider work]
region = US
subdomain = example
client_id = cid
client_secret = csecret
username = jane@example.com

[app dev]
app_id = 123456
provider = work
duration = 28800

[app prod]
app_id = 654321
provider = work
role_arn = arn:aws:iam::111111111111:role/ReadOnly
"""


@pytest.fixture
def config_file(tmp_path):
    path = tmp_path / "onelogin-aws"
    path.write_text(VALID_CONFIG)
    return path


@pytest.fixture
def config(config_file):
    return load_config(str(config_file))


class TestLoadConfig:
    """Tests for load_config."""

    def test_missing_file(self, tmp_path):
        """Should raise ConfigError when the file does not exist."""
        with pytest.raises(ConfigError, match="not found"):
            load_config(str(tmp_path / "missing"))

    def test_env_var_path(self, config_file, monkeypatch):
        """Should read the path from ONELOGIN_AWS_CONFIG when none is given."""
        monkeypatch.setenv("ONELOGIN_AWS_CONFIG", str(config_file))

        assert load_config().has_section("app dev")

    def test_unparseable_file(self, tmp_path):
        """Should wrap configparser errors."""
        path = tmp_path / "broken"
        path.write_text("no section header\n")

        with pytest.raises(ConfigError):
            load_config(str(path))


class TestProviderConfig:
    """Tests for get_provider_config."""

    def test_valid(self, config):
        provider = get_provider_config(config, "work")

        assert provider.region == "us"
        assert provider.subdomain == "example"
        assert provider.client_id == "cid"
        assert provider.client_secret == "csecret"
        assert provider.username == "jane@example.com"
        assert "csecret" not in repr(provider)

    def test_unknown_provider(self, config):
        with pytest.raises(ConfigError, match="provider home"):
            get_provider_config(config, "home")

    def test_missing_keys(self, tmp_path):
        path = tmp_path / "cfg"
        path.write_text("[provider work]\nregion = us\nsubdomain = example\n")

        with pytest.raises(ConfigError, match="client_id, client_secret"):
            get_provider_config(load_config(str(path)), "work")

    def test_invalid_region(self, tmp_path):
        path = tmp_path / "cfg"
        path.write_text("[provider work]\nregion = ap\nsubdomain = x\nclient_id = a\nclient_secret = b\n")

        with pytest.raises(ConfigError, match="region"):
            get_provider_config(load_config(str(path)), "work")

    def test_username_optional(self, tmp_path):
        path = tmp_path / "cfg"
        path.write_text("[provider work]\nregion = eu\nsubdomain = x\nclient_id = a\nclient_secret = b\n")

        assert get_provider_config(load_config(str(path)), "work").username is None


class TestAppConfig:
    """Tests for get_app_config."""

    def test_valid(self, config):
        app = get_app_config(config, "dev")

        assert app.app_id == "123456"
        assert app.provider == "work"
        assert app.duration == 28800
        assert app.role_arn is None

    def test_role_arn(self, config):
        app = get_app_config(config, "prod")

        assert app.duration is None
        assert app.role_arn == "arn:aws:iam::111111111111:role/ReadOnly"

    def test_unknown_app(self, config):
        with pytest.raises(ConfigError, match="app staging"):
            get_app_config(config, "staging")

    @pytest.mark.parametrize("duration", ["60", "50000", "eight hours"])
    def test_invalid_duration(self, tmp_path, duration):
        path = tmp_path / "cfg"
        path.write_text(f"[app dev]\napp_id = 1\nprovider = work\nduration = {duration}\n")

        with pytest.raises(ConfigError, match="duration"):
            get_app_config(load_config(str(path)), "dev")
