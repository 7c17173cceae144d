"""Tests for configuration management."""

import io
import logging

import pytest
import yaml
from pydantic import ValidationError

from polydns.config import (
    EnvironmentSettings,
    PolyDNSConfig,
    ProviderEntry,
    build_provider_config,
    dump_yaml,
    find_config_file,
    get_provider_entry,
    load_config,
    load_env_settings,
)


@pytest.fixture
def sample_config_data():
    """Return sample configuration data."""
    return {
        "default_provider": "cf",
        "timeout": 15,
        "providers": {
            "simple": {"provider": "dnsimple", "options": {"account_id": 12345}},
            "cf": {"provider": "cloudflare", "options": {"zone_id": "abc123"}},
        },
    }


@pytest.fixture
def temp_config_file(tmp_path, sample_config_data):
    """Create a temporary config file."""
    config_file = tmp_path / "polydns.yaml"
    config_file.write_text(yaml.dump(sample_config_data))
    return config_file


class TestPolyDNSConfig:
    """Tests for PolyDNSConfig."""

    def test_defaults(self):
        """Test an empty config points at DNSimple."""
        config = PolyDNSConfig()

        assert config.default_provider == "dnsimple"
        assert config.timeout == 30.0
        assert config.providers["dnsimple"].provider == "dnsimple"

    def test_default_provider_is_first_entry(self):
        """Test the first provider entry is the default when unset."""
        config = PolyDNSConfig(
            providers={"aws": {"provider": "route53"}, "cf": {"provider": "cloudflare"}}
        )
        assert config.default_provider == "aws"

    def test_undefined_default_provider(self):
        """Test a default_provider missing from providers is refused."""
        with pytest.raises(ValidationError, match="not defined under providers"):
            PolyDNSConfig(default_provider="missing", providers={"cf": {"provider": "cloudflare"}})

    def test_timeout_must_be_positive(self):
        """Test the timeout is validated."""
        with pytest.raises(ValidationError):
            PolyDNSConfig(timeout=0)

    def test_numeric_options_stringified(self):
        """Test YAML numbers become strings for provider options."""
        entry = ProviderEntry(provider="dnsimple", options={"account_id": 12345, "flag": True})
        assert entry.options == {"account_id": "12345", "flag": True}


class TestLoadConfig:
    """Tests for load_config()."""

    def test_load_explicit_path(self, temp_config_file):
        """Test loading a config file by path."""
        config = load_config(temp_config_file)

        assert config.default_provider == "cf"
        assert config.timeout == 15
        assert config.providers["simple"].options["account_id"] == "12345"

    def test_missing_explicit_path(self, tmp_path):
        """Test an explicit missing path raises FileNotFoundError."""
        with pytest.raises(FileNotFoundError):
            load_config(tmp_path / "nope.yaml")

    def test_found_in_parent(self, temp_config_file, monkeypatch):
        """Test polydns.yaml is found from a subdirectory."""
        subdir = temp_config_file.parent / "a" / "b"
        subdir.mkdir(parents=True)
        monkeypatch.chdir(subdir)

        assert find_config_file() == temp_config_file
        assert load_config().default_provider == "cf"

    def test_defaults_without_file(self, tmp_path, monkeypatch):
        """Test defaults are used when no config file exists."""
        monkeypatch.chdir(tmp_path)

        assert find_config_file(tmp_path) is None
        assert load_config().default_provider == "dnsimple"

    def test_empty_file(self, tmp_path):
        """Test an empty file yields the defaults."""
        config_file = tmp_path / "polydns.yaml"
        config_file.write_text("")

        assert load_config(config_file).default_provider == "dnsimple"


class TestProviderEntry:
    """Tests for get_provider_entry()."""

    def test_default_entry(self, temp_config_file):
        """Test the default entry is returned without a key."""
        entry = get_provider_entry(load_config(temp_config_file))
        assert entry.provider == "cloudflare"

    def test_named_entry(self, temp_config_file):
        """Test a named entry is returned."""
        entry = get_provider_entry(load_config(temp_config_file), "simple")
        assert entry.provider == "dnsimple"

    def test_unknown_entry(self, temp_config_file):
        """Test an unknown entry raises ValueError."""
        with pytest.raises(ValueError, match="'nope' not found"):
            get_provider_entry(load_config(temp_config_file), "nope")


class TestEnvironmentSettings:
    """Tests for environment settings."""

    def test_reads_prefixed_variables(self, tmp_path, monkeypatch):
        """Test POLYDNS_ variables are loaded."""
        monkeypatch.chdir(tmp_path)
        monkeypatch.setenv("POLYDNS_DNSIMPLE_API_TOKEN", "env-token")
        monkeypatch.setenv("POLYDNS_AWS_REGION", "eu-west-1")

        settings = load_env_settings()

        assert settings.dnsimple_api_token == "env-token"
        assert settings.aws_region == "eu-west-1"
        assert settings.cloudflare_api_token is None

    def test_reads_dotenv(self, tmp_path, monkeypatch):
        """Test variables are read from .env in the working directory."""
        monkeypatch.chdir(tmp_path)
        monkeypatch.delenv("POLYDNS_CLOUDFLARE_API_TOKEN", raising=False)
        (tmp_path / ".env").write_text("POLYDNS_CLOUDFLARE_API_TOKEN=dotenv-token\n")

        assert load_env_settings().cloudflare_api_token == "dotenv-token"


class TestBuildProviderConfig:
    """Tests for build_provider_config()."""

    def test_env_credentials(self):
        """Test credentials come from the environment for the provider type."""
        settings = EnvironmentSettings(
            dnsimple_api_token="dns-token",
            cloudflare_api_token="cf-token",
            cloudflare_zone_id=None,
        )
        entry = ProviderEntry(provider="cloudflare", options={"zone_id": "Z1"})

        assert build_provider_config(entry, settings) == {
            "api_token": "cf-token",
            "zone_id": "Z1",
        }

    def test_yaml_wins(self):
        """Test options in the file override the environment."""
        settings = EnvironmentSettings(dnsimple_api_token="t", dnsimple_account_id="1")
        entry = ProviderEntry(provider="dnsimple", options={"account_id": "2"})

        assert build_provider_config(entry, settings)["account_id"] == "2"

    def test_route53_mapping(self):
        """Test AWS settings map onto route53 options."""
        settings = EnvironmentSettings(
            aws_access_key_id="AKIA", aws_secret_access_key="s", aws_region="eu-west-1"
        )
        config = build_provider_config(ProviderEntry(provider="route53"), settings)

        assert config["aws_access_key_id"] == "AKIA"
        assert config["aws_secret_access_key"] == "s"
        assert config["region"] == "eu-west-1"

    def test_secret_in_file_warns_without_value(self, caplog):
        """Test a credential in the file is warned about without logging it."""
        caplog.set_level(logging.WARNING, logger="polydns")
        entry = ProviderEntry(provider="dnsimple", options={"api_token": "file-secret"})

        config = build_provider_config(entry, EnvironmentSettings(dnsimple_api_token=None))

        assert config["api_token"] == "file-secret"
        assert "api_token" in caplog.text
        assert "file-secret" not in caplog.text


def test_dump_yaml_literal_blocks():
    """Test multiline strings are written as literal blocks."""
    stream = io.StringIO()
    dump_yaml({"note": "line one\nline two\n", "name": "x"}, stream)

    text = stream.getvalue()
    assert "note: |" in text
    assert yaml.safe_load(text) == {"note": "line one\nline two\n", "name": "x"}
