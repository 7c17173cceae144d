"""Configuration management for polydns."""

import logging
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)

CONFIG_FILENAMES = ("polydns.yaml", "polydns.yml")


class ProviderEntry(BaseModel):
    """One configured DNS provider account."""

    provider: str = "dnsimple"
    options: dict[str, Any] = Field(default_factory=dict)

    @field_validator("options")
    @classmethod
    def stringify_options(cls, v: dict[str, Any]) -> dict[str, Any]:
        # YAML turns numeric account ids into ints; options are strings
        return {
            key: str(val) if isinstance(val, (int, float)) and not isinstance(val, bool) else val
            for key, val in v.items()
        }


class PolyDNSConfig(BaseModel):
    """Main configuration for polydns."""

    default_provider: str | None = None  # First entry under providers if unset
    timeout: float = Field(default=30.0, gt=0)
    providers: dict[str, ProviderEntry] = Field(default=None, validate_default=True)

    @field_validator("providers", mode="before")
    @classmethod
    def set_default_providers(cls, v: dict[str, Any] | None) -> dict[str, ProviderEntry]:
        if not v:
            return {"dnsimple": ProviderEntry(provider="dnsimple")}
        return {
            k: ProviderEntry(**val) if isinstance(val, dict) else val for k, val in v.items()
        }

    @model_validator(mode="after")
    def check_default_provider(self) -> "PolyDNSConfig":
        if self.default_provider is None:
            self.default_provider = next(iter(self.providers))
        elif self.default_provider not in self.providers:
            raise ValueError(
                f"default_provider '{self.default_provider}' is not defined under providers"
            )
        return self


class EnvironmentSettings(BaseSettings):
    """Environment variables for sensitive configuration."""

    model_config = SettingsConfigDict(env_prefix="POLYDNS_", env_file=".env", extra="ignore")

    # DNSimple
    dnsimple_api_token: str | None = None
    dnsimple_account_id: str | None = None

    # Cloudflare
    cloudflare_api_token: str | None = None
    cloudflare_zone_id: str | None = None

    # Route 53
    aws_access_key_id: str | None = None
    aws_secret_access_key: str | None = None
    aws_region: str | None = None


# Provider option -> EnvironmentSettings field, per provider type
ENV_OPTIONS: dict[str, dict[str, str]] = {
    "dnsimple": {
        "api_token": "dnsimple_api_token",
        "account_id": "dnsimple_account_id",
    },
    "cloudflare": {
        "api_token": "cloudflare_api_token",
        "zone_id": "cloudflare_zone_id",
    },
    "route53": {
        "aws_access_key_id": "aws_access_key_id",
        "aws_secret_access_key": "aws_secret_access_key",
        "region": "aws_region",
    },
}

# Options that belong in the environment rather than in polydns.yaml
SENSITIVE_OPTIONS = {"api_token", "aws_access_key_id", "aws_secret_access_key"}


def find_config_file(start_path: Path | None = None) -> Path | None:
    """Find polydns.yaml in current or parent directories."""
    search_path = start_path or Path.cwd()

    for path in [search_path, *search_path.parents]:
        for filename in CONFIG_FILENAMES:
            config_file = path / filename
            if config_file.exists():
                return config_file

    return None


def load_config(config_path: Path | None = None) -> PolyDNSConfig:
    """Load configuration from YAML file.

    Without an explicit path, the nearest polydns.yaml is used, falling back
    to the defaults when there is none.

    Raises:
        FileNotFoundError: If an explicit config_path does not exist
    """
    if config_path is None:
        config_path = find_config_file()
        if config_path is None:
            logger.debug("No polydns.yaml found, using defaults")
            return PolyDNSConfig()
    elif not config_path.exists():
        raise FileNotFoundError(f"Config file {config_path} not found")

    with open(config_path) as f:
        data = yaml.safe_load(f) or {}

    return PolyDNSConfig(**data)


def load_env_settings() -> EnvironmentSettings:
    """Load environment settings from .env and environment variables."""
    return EnvironmentSettings()


def build_provider_config(
    entry: ProviderEntry, settings: EnvironmentSettings
) -> dict[str, Any]:
    """Merge environment credentials with the options from polydns.yaml.

    Options in the YAML file win over the environment.
    """
    config: dict[str, Any] = {}

    for option, field in ENV_OPTIONS.get(entry.provider.lower(), {}).items():
        value = getattr(settings, field)
        if value:
            config[option] = value

    for option, value in entry.options.items():
        if option in SENSITIVE_OPTIONS:
            logger.warning(
                "Option '%s' is set in the config file; prefer the environment", option
            )
        config[option] = value

    return config


def get_provider_entry(config: PolyDNSConfig, key: str | None = None) -> ProviderEntry:
    """Get a configured provider entry, the default one if key is None."""
    key = key or config.default_provider
    entry = config.providers.get(key)
    if entry is None:
        raise ValueError(f"Provider '{key}' not found in configuration")
    return entry


class _LiteralBlockDumper(yaml.SafeDumper):
    pass


def _str_representer(dumper: yaml.SafeDumper, data: str) -> yaml.ScalarNode:
    if "\n" in data:
        return dumper.represent_scalar("tag:yaml.org,2002:str", data, style="|")
    return dumper.represent_scalar("tag:yaml.org,2002:str", data)


_LiteralBlockDumper.add_representer(str, _str_representer)


def dump_yaml(data: dict, stream=None) -> str | None:
    """Dump data to YAML, preserving multiline strings as literal blocks."""
    return yaml.dump(
        data,
        stream=stream,
        Dumper=_LiteralBlockDumper,
        default_flow_style=False,
        sort_keys=False,
    )
