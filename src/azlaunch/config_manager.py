"""Configuration management module.

Holds every name and constant used by the provisioning pipeline and persists
user overrides in TOML format.

Security:
- Config file permissions: 0600 (owner read/write only)
- Path validation
- The subscription ID is never written to disk
"""

import logging
import os
import tempfile
import tomllib  # Python 3.11+ (requires-python >= 3.11)
from dataclasses import asdict, dataclass, field, fields, replace
from pathlib import Path
from typing import Any

import tomlkit

from azlaunch.exceptions import ConfigError

logger = logging.getLogger(__name__)

SUBSCRIPTION_ENV_VAR = "SUBSCRIPTION_ID"
DEFAULT_NAME = "azlaunch"
BOOL_FIELDS = frozenset({"reuse_existing"})
TRUE_STRINGS = ("true", "yes", "1", "on")
FALSE_STRINGS = ("false", "no", "0", "off")


def _parse_bool(key: str, value: Any) -> bool:
    """Accept a TOML boolean or one of the usual yes/no spellings."""
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in TRUE_STRINGS:
            return True
        if lowered in FALSE_STRINGS:
            return False
    raise ConfigError(f"'{key}' expects a boolean, got: {value!r}")


def _parse_subnets(value: Any) -> dict[str, str]:
    if not isinstance(value, dict) or not value:
        raise ConfigError("'subnets' must be a table with at least one name = prefix entry")
    for name, prefix in value.items():
        if not isinstance(prefix, str):
            raise ConfigError(f"Subnet '{name}' prefix must be a string, got: {prefix!r}")
    return dict(value)


def _default_subnets() -> dict[str, str]:
    return {
        f"{DEFAULT_NAME}-subnet-0": "10.1.2.0/24",
        f"{DEFAULT_NAME}-subnet-1": "10.1.3.0/24",
    }


@dataclass
class LaunchConfig:
    """Names and constants for one provisioning run."""

    resource_group: str = DEFAULT_NAME
    location: str = "westus"
    vnet_name: str = DEFAULT_NAME
    address_prefix: str = "10.1.0.0/16"
    subnets: dict[str, str] = field(default_factory=_default_subnets)  # name -> prefix, ordered
    public_ip_name: str = f"{DEFAULT_NAME}-ip"
    security_group_name: str = f"{DEFAULT_NAME}-nsg"
    nic_name: str = f"{DEFAULT_NAME}-nic"
    vm_name: str = DEFAULT_NAME
    vm_size: str = "Standard_F2s"
    admin_username: str = "azureuser"
    image_publisher: str = "Canonical"
    image_offer: str = "0001-com-ubuntu-server-jammy"
    image_sku: str = "22_04-lts-gen2"
    image_version: str = "latest"
    os_disk_name: str = f"{DEFAULT_NAME}-osdisk"
    storage_account_type: str = "Standard_LRS"
    key_dir: str | None = None  # None means the current working directory
    private_key_name: str = "mykey.pem"
    public_key_name: str = "mykey.pub"
    reuse_existing: bool = True

    @property
    def first_subnet_name(self) -> str:
        """Name of the subnet the network interface binds to."""
        if not self.subnets:
            raise ConfigError("At least one subnet must be configured")
        return next(iter(self.subnets))

    @property
    def key_directory(self) -> Path:
        """Directory the SSH keypair is written to."""
        if self.key_dir:
            return Path(self.key_dir).expanduser()
        return Path.cwd()

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary, excluding None values."""
        data = asdict(self)
        # TOML has no null
        return {k: v for k, v in data.items() if v is not None}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "LaunchConfig":
        """Create from dictionary, ignoring unknown keys.

        Raises:
            ConfigError: If subnets is empty or a boolean field holds a non-boolean
        """
        known = {f.name for f in fields(cls)}
        unknown = set(data) - known
        for key in sorted(unknown):
            logger.warning(f"Unknown config key ignored: {key}")

        values = {k: v for k, v in data.items() if k in known}
        if "subnets" in values:
            values["subnets"] = _parse_subnets(values["subnets"])
        for key in BOOL_FIELDS & values.keys():
            values[key] = _parse_bool(key, values[key])
        return cls(**values)

    def with_overrides(self, **overrides: Any) -> "LaunchConfig":
        """Return a copy with non-None overrides applied (CLI values)."""
        updates = {k: v for k, v in overrides.items() if v is not None}
        return replace(self, **updates)


class ConfigManager:
    """Manage the azlaunch configuration file.

    Configuration is stored at ~/.azlaunch/config.toml with secure permissions.
    """

    DEFAULT_CONFIG_DIR = Path.home() / ".azlaunch"
    DEFAULT_CONFIG_FILE = DEFAULT_CONFIG_DIR / "config.toml"

    TABLE_FIELDS = frozenset({"subnets"})

    @classmethod
    def _validate_config_path(cls, path: Path) -> Path:
        """Validate configuration file path.

        The path must live under ~/.azlaunch/, the current working directory, or
        the system temporary directory.

        Raises:
            ConfigError: If path is outside allowed directories
        """
        resolved_path = path.resolve()

        allowed_dirs = [
            cls.DEFAULT_CONFIG_DIR.resolve(),
            Path.cwd().resolve(),
            Path(tempfile.gettempdir()).resolve(),
        ]

        for allowed_dir in allowed_dirs:
            try:
                resolved_path.relative_to(allowed_dir)
                return resolved_path
            except ValueError:
                continue

        raise ConfigError(
            f"Config path outside allowed directories: {resolved_path}\n"
            f"Allowed directories:\n"
            f"  - {cls.DEFAULT_CONFIG_DIR}\n"
            f"  - {Path.cwd()}"
        )

    @classmethod
    def get_config_path(cls, custom_path: str | None = None) -> Path:
        """Get configuration file path.

        Raises:
            ConfigError: If a custom path is missing or outside allowed directories
        """
        if custom_path:
            path = cls._validate_config_path(Path(custom_path).expanduser())
            if not path.exists():
                raise ConfigError(f"Config file not found: {path}")
            return path

        return cls.DEFAULT_CONFIG_FILE

    @classmethod
    def ensure_config_dir(cls) -> Path:
        """Ensure config directory exists with 0700 permissions."""
        try:
            cls.DEFAULT_CONFIG_DIR.mkdir(parents=True, exist_ok=True)
            os.chmod(cls.DEFAULT_CONFIG_DIR, 0o700)
            logger.debug(f"Config directory ready: {cls.DEFAULT_CONFIG_DIR}")
            return cls.DEFAULT_CONFIG_DIR
        except OSError as e:
            raise ConfigError(f"Failed to create config directory: {e}") from e

    @classmethod
    def load_config(cls, custom_path: str | None = None) -> LaunchConfig:
        """Load configuration from file, falling back to defaults.

        Raises:
            ConfigError: If the file exists but cannot be parsed
        """
        config_path = cls.get_config_path(custom_path)

        if not config_path.exists():
            logger.debug("Config file not found, using defaults")
            return LaunchConfig()

        try:
            mode = config_path.stat().st_mode & 0o777
            if mode & 0o077:
                logger.warning(
                    f"Config file has insecure permissions: {oct(mode)}. Fixing to 0600..."
                )
                os.chmod(config_path, 0o600)

            with open(config_path, "rb") as f:
                data = tomllib.load(f)

            logger.debug(f"Loaded config from: {config_path}")
            return LaunchConfig.from_dict(data)

        except (OSError, tomllib.TOMLDecodeError, TypeError) as e:
            raise ConfigError(f"Failed to load config: {e}") from e

    @classmethod
    def save_config(cls, config: LaunchConfig, custom_path: str | None = None) -> Path:
        """Save configuration atomically, preserving comments in an existing file.

        Returns:
            Path the configuration was written to

        Raises:
            ConfigError: If saving fails
        """
        temp_path: Path | None = None
        try:
            if custom_path:
                config_path = cls._validate_config_path(Path(custom_path).expanduser())
                config_path.parent.mkdir(parents=True, exist_ok=True)
            else:
                cls.ensure_config_dir()
                config_path = cls.DEFAULT_CONFIG_FILE

            temp_path = config_path.with_suffix(".tmp")

            if config_path.exists():
                with open(config_path) as f:
                    doc = tomlkit.load(f)
            else:
                doc = tomlkit.document()

            # Tables must follow plain keys in TOML
            items = sorted(config.to_dict().items(), key=lambda item: isinstance(item[1], dict))
            for key, value in items:
                doc[key] = value

            with open(temp_path, "w") as f:
                tomlkit.dump(doc, f)

            os.chmod(temp_path, 0o600)
            temp_path.replace(config_path)

            logger.debug(f"Saved config to: {config_path}")
            return config_path

        except (OSError, ValueError) as e:
            if temp_path and temp_path.exists():
                temp_path.unlink()
            raise ConfigError(f"Failed to save config: {e}") from e

    @classmethod
    def set_value(cls, key: str, raw_value: str, custom_path: str | None = None) -> LaunchConfig:
        """Update one scalar configuration value from its string form.

        Raises:
            ConfigError: If the key is unknown or not settable from a string
        """
        known = {f.name for f in fields(LaunchConfig)}
        if key not in known:
            raise ConfigError(f"Unknown config key: {key}")
        if key in cls.TABLE_FIELDS:
            raise ConfigError(f"'{key}' is a table; edit {cls.DEFAULT_CONFIG_FILE} directly")

        value: Any = _parse_bool(key, raw_value) if key in BOOL_FIELDS else raw_value

        config = replace(cls.load_config(custom_path), **{key: value})
        cls.save_config(config, custom_path)
        return config

    @classmethod
    def get_subscription_id(cls, cli_value: str | None = None) -> str:
        """Resolve the target subscription.

        Priority order:
        1. CLI option
        2. SUBSCRIPTION_ID environment variable

        Raises:
            ConfigError: If no subscription is provided
        """
        if cli_value and cli_value.strip():
            return cli_value.strip()

        env_value = os.environ.get(SUBSCRIPTION_ENV_VAR, "").strip()
        if env_value:
            return env_value

        raise ConfigError(
            f"No subscription ID was provided. Set the {SUBSCRIPTION_ENV_VAR} environment variable."
        )


__all__ = ["SUBSCRIPTION_ENV_VAR", "ConfigManager", "LaunchConfig"]
