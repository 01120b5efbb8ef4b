"""Provider and app configuration read from an INI file.

Example ``~/.onelogin-aws``::

    [provider work]
    region = us
    subdomain = example
    client_id = 0123...
    client_secret = abcd...
    username = jane@example.com

    [app dev]
    app_id = 123456
    provider = work
    duration = 28800
"""

import configparser
import os
from dataclasses import dataclass, field

from .credentials import MAX_DURATION, MIN_DURATION
from .errors import ConfigError

DEFAULT_CONFIG_PATH = os.path.expanduser("~/.onelogin-aws")
ONELOGIN_REGIONS = ("us", "eu")


@dataclass(frozen=True)
class ProviderConfig:
    name: str
    region: str
    subdomain: str
    client_id: str
    client_secret: str = field(repr=False)
    username: str = None


@dataclass(frozen=True)
class AppConfig:
    name: str
    app_id: str
    provider: str
    duration: int = None
    role_arn: str = None


def load_config(config_path=None):
    """Load configuration from an INI file."""
    config_path = config_path or os.environ.get("ONELOGIN_AWS_CONFIG") or DEFAULT_CONFIG_PATH
    config = configparser.ConfigParser()
    try:
        read = config.read(config_path)
    except configparser.Error as exc:
        raise ConfigError(f"reading {config_path}: {exc}") from exc
    if not read:
        raise ConfigError(f"config file {config_path} not found")
    return config


def _section(config, kind, name):
    section = f"{kind} {name}"
    if not config.has_section(section):
        raise ConfigError(f"no [{section}] section in config")
    return config[section]


def _require(section, keys):
    missing = [k for k in keys if not section.get(k)]
    if missing:
        raise ConfigError(f"[{section.name}] is missing {', '.join(missing)}")


def validate_duration(duration):
    if not MIN_DURATION <= duration <= MAX_DURATION:
        raise ConfigError(f"duration must be between {MIN_DURATION} and {MAX_DURATION} seconds, got {duration}")
    return duration


def get_provider_config(config, name):
    section = _section(config, "provider", name)
    _require(section, ("region", "subdomain", "client_id", "client_secret"))

    region = section["region"].lower()
    if region not in ONELOGIN_REGIONS:
        raise ConfigError(f"[{section.name}] region must be one of {', '.join(ONELOGIN_REGIONS)}")

    return ProviderConfig(
        name=name,
        region=region,
        subdomain=section["subdomain"],
        client_id=section["client_id"],
        client_secret=section["client_secret"],
        username=section.get("username") or None,
    )


def get_app_config(config, name):
    section = _section(config, "app", name)
    _require(section, ("app_id", "provider"))

    duration = None
    if section.get("duration"):
        try:
            duration = validate_duration(section.getint("duration"))
        except ValueError as exc:
            raise ConfigError(f"[{section.name}] duration is not a number") from exc

    return AppConfig(
        name=name,
        app_id=section["app_id"],
        provider=section["provider"],
        duration=duration,
        role_arn=section.get("role_arn") or None,
    )
