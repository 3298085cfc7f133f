"""Exception hierarchy for azlaunch.

Every error raised by the provisioning pipeline derives from AzlaunchError so the
CLI entry point can map any failure to exit status 1 in one place.
"""


class AzlaunchError(Exception):
    """Base class for all azlaunch errors."""

    pass


class ConfigError(AzlaunchError):
    """Raised when configuration is missing or invalid."""

    pass


class SSHKeyError(AzlaunchError):
    """Raised when SSH key generation or persistence fails."""

    pass


class AuthenticationError(AzlaunchError):
    """Raised when no usable Azure credential can be obtained."""

    pass


class ProvisioningError(AzlaunchError):
    """Raised when an Azure resource operation fails."""

    pass


class NetworkProvisioningError(ProvisioningError):
    """Raised when a network resource operation fails."""

    pass


__all__ = [
    "AuthenticationError",
    "AzlaunchError",
    "ConfigError",
    "NetworkProvisioningError",
    "ProvisioningError",
    "SSHKeyError",
]
