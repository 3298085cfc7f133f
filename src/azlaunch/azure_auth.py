"""Azure authentication handler module.

Obtains a token credential by delegating to the Azure CLI session that is
already logged in on this host. Nothing is stored: az CLI keeps its tokens in
~/.azure/ and the Azure Identity SDK reads them on demand.

Security:
- No credential storage
- Delegates to az CLI
- Sanitized error messages
"""

import logging
import re

from azure.core.credentials import TokenCredential
from azure.core.exceptions import ClientAuthenticationError
from azure.identity import AzureCliCredential, CredentialUnavailableError

from azlaunch.exceptions import AuthenticationError
from azlaunch.log_sanitizer import LogSanitizer

logger = logging.getLogger(__name__)

MANAGEMENT_SCOPE = "https://management.azure.com/.default"


class AzureAuthenticator:
    """Resolve the credential used by every resource-management client.

    The credential object is cached for the lifetime of the authenticator; token
    refresh is handled inside the Azure Identity SDK.
    """

    SUBSCRIPTION_ID_PATTERN = re.compile(
        r"^[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}$", re.IGNORECASE
    )

    def __init__(self, process_timeout: int = 10):
        """Initialize Azure authenticator.

        Args:
            process_timeout: Seconds to wait for the az CLI token call
        """
        self._process_timeout = process_timeout
        self._credential: TokenCredential | None = None

    def get_credential(self) -> TokenCredential:
        """Get an Azure CLI backed credential, verified with a token request.

        Returns:
            TokenCredential usable by azure-mgmt-* clients

        Raises:
            AuthenticationError: If no active az CLI session exists
        """
        if self._credential is not None:
            return self._credential

        credential = AzureCliCredential(process_timeout=self._process_timeout)
        try:
            credential.get_token(MANAGEMENT_SCOPE)
        except (CredentialUnavailableError, ClientAuthenticationError) as e:
            safe_error = LogSanitizer.sanitize_exception(e)
            logger.debug(f"az CLI credential unavailable: {safe_error}")
            raise AuthenticationError(
                f"No active Azure CLI session. Please run: az login\nError: {safe_error}"
            ) from e

        logger.info("Using Azure credentials from az CLI")
        self._credential = credential
        return credential

    def validate_subscription_id(self, subscription_id: str | None) -> bool:
        """Check that a subscription ID has UUID shape."""
        if not subscription_id:
            return False
        return bool(self.SUBSCRIPTION_ID_PATTERN.match(subscription_id))

    def clear_cache(self) -> None:
        """Drop the cached credential."""
        self._credential = None
        logger.debug("Cleared credential cache")


__all__ = ["MANAGEMENT_SCOPE", "AzureAuthenticator"]
