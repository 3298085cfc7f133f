"""Resource-management client construction.

Each SDK client is built once per run and handed explicitly to the stage that
uses it; there are no module-level client handles.
"""

import logging
from dataclasses import dataclass

from azure.core.credentials import TokenCredential
from azure.mgmt.compute import ComputeManagementClient
from azure.mgmt.network import NetworkManagementClient
from azure.mgmt.resource import ResourceManagementClient

logger = logging.getLogger(__name__)


@dataclass
class AzureClients:
    """The three management clients the pipeline composes."""

    resource: ResourceManagementClient
    network: NetworkManagementClient
    compute: ComputeManagementClient

    @classmethod
    def create(cls, credential: TokenCredential, subscription_id: str) -> "AzureClients":
        """Build all clients for one subscription from a single credential."""
        logger.debug("Creating Azure management clients")
        return cls(
            resource=ResourceManagementClient(credential, subscription_id),
            network=NetworkManagementClient(credential, subscription_id),
            compute=ComputeManagementClient(credential, subscription_id),
        )


__all__ = ["AzureClients"]
