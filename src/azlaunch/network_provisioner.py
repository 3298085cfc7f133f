"""Network provisioning module.

Builds the network side of a single VM: resource group, virtual network with
two subnets, a static public IP, a security group allowing SSH and HTTPS, and
the network interface binding them together.

Every create is a long-running Azure operation; each one is submitted and then
blocked on until the platform reports a terminal state. Errors abort the run
and nothing created earlier is cleaned up.
"""

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

from azure.core.exceptions import AzureError, ResourceNotFoundError
from azure.mgmt.network.models import (
    AddressSpace,
    NetworkInterface,
    NetworkInterfaceIPConfiguration,
    NetworkSecurityGroup,
    PublicIPAddress,
    PublicIPAddressSku,
    SecurityRule,
    Subnet,
    VirtualNetwork,
)
from azure.mgmt.resource.resources.models import ResourceGroup

from azlaunch.azure_clients import AzureClients
from azlaunch.config_manager import LaunchConfig
from azlaunch.exceptions import NetworkProvisioningError
from azlaunch.log_sanitizer import LogSanitizer

logger = logging.getLogger(__name__)

NOT_FOUND_ERROR_CODES = frozenset({"ResourceNotFound"})


@dataclass(frozen=True)
class InboundRule:
    """One inbound allow rule on the security group."""

    name: str
    port: str
    priority: int
    protocol: str = "Tcp"


DEFAULT_INBOUND_RULES: tuple[InboundRule, ...] = (
    InboundRule(name="allow_ssh", port="22", priority=100),
    InboundRule(name="allow_https", port="443", priority=200),
)


@dataclass
class VirtualNetworkResult:
    """Normalized view of the virtual network, whether found or created.

    Attributes:
        name: Virtual network name
        id: Azure resource ID
        subnet_ids: Subnet name -> resource ID, in Azure order
        created: True if this run created the network
    """

    name: str
    id: str | None
    subnet_ids: dict[str, str]
    created: bool

    def subnet_id_for(self, preferred_name: str) -> str:
        """Return the named subnet's ID, or the first subnet when the name is absent.

        Raises:
            NetworkProvisioningError: If the network has no subnets
        """
        if preferred_name in self.subnet_ids:
            return self.subnet_ids[preferred_name]
        if not self.subnet_ids:
            raise NetworkProvisioningError(f"Virtual network {self.name} has no subnets")
        return next(iter(self.subnet_ids.values()))


@dataclass
class NetworkResources:
    """Identifiers handed from the network stage to the compute stage."""

    resource_group: str
    location: str
    vnet_name: str
    subnet_id: str
    public_ip_id: str
    security_group_id: str
    network_interface_id: str
    vnet_created: bool
    reused: list[str] = field(default_factory=list)


class NetworkProvisioner:
    """Create or reuse the network resources for one VM.

    The resource group is create-or-update by API contract. The virtual network
    is looked up first and only created when absent. Public IP, security group
    and network interface are looked up first when ``config.reuse_existing`` is
    set, otherwise a create is always submitted.
    """

    def __init__(
        self,
        clients: AzureClients,
        config: LaunchConfig,
        progress_callback: Callable[[str], None] | None = None,
    ):
        self.clients = clients
        self.config = config
        self._progress_callback = progress_callback

    def _report(self, message: str) -> None:
        logger.debug(message)
        if self._progress_callback:
            self._progress_callback(message)

    @staticmethod
    def _is_not_found(error: AzureError) -> bool:
        if isinstance(error, ResourceNotFoundError):
            return True
        code = getattr(getattr(error, "error", None), "code", None)
        return code in NOT_FOUND_ERROR_CODES

    def _lookup(self, description: str, getter: Callable[..., Any], *args: Any) -> Any | None:
        """Call a ``get`` operation, mapping "not found" to None.

        Raises:
            NetworkProvisioningError: For any error other than "not found"
        """
        try:
            return getter(*args)
        except AzureError as e:
            if self._is_not_found(e):
                logger.debug(f"{description} not found")
                return None
            raise NetworkProvisioningError(
                LogSanitizer.create_safe_error_message(e, f"Failed to look up {description}")
            ) from e

    def _create(self, description: str, begin: Callable[..., Any], *args: Any) -> Any:
        """Submit a long-running create and block until it completes.

        Raises:
            NetworkProvisioningError: If submission or polling fails
        """
        self._report(f"Creating {description}")
        try:
            poller = begin(*args)
            result = poller.result()
        except AzureError as e:
            raise NetworkProvisioningError(
                LogSanitizer.create_safe_error_message(e, f"Failed to create {description}")
            ) from e
        logger.info(f"Created {description}")
        return result

    def ensure_resource_group(self) -> str:
        """Create or update the resource group.

        Returns:
            Resource group name as reported by Azure
        """
        name = self.config.resource_group
        self._report(f"Ensuring resource group {name} in {self.config.location}")
        try:
            group = self.clients.resource.resource_groups.create_or_update(
                name, ResourceGroup(location=self.config.location)
            )
        except AzureError as e:
            raise NetworkProvisioningError(
                LogSanitizer.create_safe_error_message(e, f"Failed to create resource group {name}")
            ) from e
        return group.name or name

    def _find_virtual_network(self, resource_group: str) -> VirtualNetwork | None:
        return self._lookup(
            f"virtual network {self.config.vnet_name}",
            self.clients.network.virtual_networks.get,
            resource_group,
            self.config.vnet_name,
        )

    def virtual_network_exists(self, resource_group: str) -> bool:
        """Check whether the virtual network exists.

        Returns:
            True if found, False on a "not found" error

        Raises:
            NetworkProvisioningError: For any other lookup error
        """
        return self._find_virtual_network(resource_group) is not None

    def _virtual_network_parameters(self) -> VirtualNetwork:
        return VirtualNetwork(
            location=self.config.location,
            address_space=AddressSpace(address_prefixes=[self.config.address_prefix]),
            subnets=[
                Subnet(name=name, address_prefix=prefix)
                for name, prefix in self.config.subnets.items()
            ],
        )

    def _subnet_ids(self, resource_group: str, vnet: VirtualNetwork) -> dict[str, str]:
        subnet_ids = {s.name: s.id for s in (vnet.subnets or []) if s.id}
        if subnet_ids:
            return subnet_ids

        # Lookup responses can omit subnets; fetch them explicitly
        self._report(f"Fetching subnets of {self.config.vnet_name}")
        try:
            subnets = self.clients.network.subnets.list(resource_group, self.config.vnet_name)
            return {s.name: s.id for s in subnets if s.id}
        except AzureError as e:
            raise NetworkProvisioningError(
                LogSanitizer.create_safe_error_message(
                    e, f"Failed to list subnets of {self.config.vnet_name}"
                )
            ) from e

    def get_or_create_virtual_network(self, resource_group: str) -> VirtualNetworkResult:
        """Reuse the virtual network if present, otherwise create it.

        Returns:
            VirtualNetworkResult with subnet IDs from whichever branch ran
        """
        vnet = self._find_virtual_network(resource_group)
        created = vnet is None

        if created:
            vnet = self._create(
                f"virtual network {self.config.vnet_name}",
                self.clients.network.virtual_networks.begin_create_or_update,
                resource_group,
                self.config.vnet_name,
                self._virtual_network_parameters(),
            )
        else:
            logger.info(f"Using existing virtual network: {self.config.vnet_name}")

        return VirtualNetworkResult(
            name=vnet.name or self.config.vnet_name,
            id=vnet.id,
            subnet_ids=self._subnet_ids(resource_group, vnet),
            created=created,
        )

    def _get_or_create(
        self,
        description: str,
        getter: Callable[..., Any],
        begin: Callable[..., Any],
        resource_group: str,
        name: str,
        parameters: Any,
        reused: list[str],
    ) -> Any:
        if self.config.reuse_existing:
            existing = self._lookup(description, getter, resource_group, name)
            if existing is not None:
                logger.info(f"Using existing {description}")
                reused.append(description)
                return existing
        return self._create(description, begin, resource_group, name, parameters)

    def _public_ip_parameters(self) -> PublicIPAddress:
        return PublicIPAddress(
            location=self.config.location,
            sku=PublicIPAddressSku(name="Standard"),
            public_ip_address_version="IPv4",
            public_ip_allocation_method="Static",
        )

    def ensure_public_ip(self, resource_group: str, reused: list[str] | None = None) -> str:
        """Create (or reuse) the static IPv4 public IP. Returns its ID."""
        ip = self._get_or_create(
            f"public IP {self.config.public_ip_name}",
            self.clients.network.public_ip_addresses.get,
            self.clients.network.public_ip_addresses.begin_create_or_update,
            resource_group,
            self.config.public_ip_name,
            self._public_ip_parameters(),
            reused if reused is not None else [],
        )
        return ip.id

    def _security_group_parameters(self) -> NetworkSecurityGroup:
        return NetworkSecurityGroup(
            location=self.config.location,
            security_rules=[
                SecurityRule(
                    name=rule.name,
                    protocol=rule.protocol,
                    source_address_prefix="*",
                    source_port_range="*",
                    destination_address_prefix="*",
                    destination_port_range=rule.port,
                    access="Allow",
                    direction="Inbound",
                    priority=rule.priority,
                )
                for rule in DEFAULT_INBOUND_RULES
            ],
        )

    def ensure_security_group(self, resource_group: str, reused: list[str] | None = None) -> str:
        """Create (or reuse) the security group with SSH and HTTPS allowed. Returns its ID."""
        nsg = self._get_or_create(
            f"security group {self.config.security_group_name}",
            self.clients.network.network_security_groups.get,
            self.clients.network.network_security_groups.begin_create_or_update,
            resource_group,
            self.config.security_group_name,
            self._security_group_parameters(),
            reused if reused is not None else [],
        )
        return nsg.id

    def _network_interface_parameters(
        self, subnet_id: str, public_ip_id: str, security_group_id: str
    ) -> NetworkInterface:
        return NetworkInterface(
            location=self.config.location,
            ip_configurations=[
                NetworkInterfaceIPConfiguration(
                    name="ipConfig",
                    private_ip_allocation_method="Dynamic",
                    subnet=Subnet(id=subnet_id),
                    public_ip_address=PublicIPAddress(id=public_ip_id),
                )
            ],
            network_security_group=NetworkSecurityGroup(id=security_group_id),
        )

    def ensure_network_interface(
        self,
        resource_group: str,
        subnet_id: str,
        public_ip_id: str,
        security_group_id: str,
        reused: list[str] | None = None,
    ) -> str:
        """Create (or reuse) the NIC bound to subnet, public IP and security group. Returns its ID."""
        nic = self._get_or_create(
            f"network interface {self.config.nic_name}",
            self.clients.network.network_interfaces.get,
            self.clients.network.network_interfaces.begin_create_or_update,
            resource_group,
            self.config.nic_name,
            self._network_interface_parameters(subnet_id, public_ip_id, security_group_id),
            reused if reused is not None else [],
        )
        return nic.id

    def provision(self) -> NetworkResources:
        """Run every network step in order.

        Returns:
            NetworkResources with the identifiers the compute stage needs

        Raises:
            NetworkProvisioningError: On the first failing step
            ConfigError: If no subnet is configured, before any Azure call
        """
        subnet_name = self.config.first_subnet_name
        reused: list[str] = []
        resource_group = self.ensure_resource_group()
        vnet = self.get_or_create_virtual_network(resource_group)
        subnet_id = vnet.subnet_id_for(subnet_name)
        public_ip_id = self.ensure_public_ip(resource_group, reused)
        security_group_id = self.ensure_security_group(resource_group, reused)
        nic_id = self.ensure_network_interface(
            resource_group, subnet_id, public_ip_id, security_group_id, reused
        )

        return NetworkResources(
            resource_group=resource_group,
            location=self.config.location,
            vnet_name=vnet.name,
            subnet_id=subnet_id,
            public_ip_id=public_ip_id,
            security_group_id=security_group_id,
            network_interface_id=nic_id,
            vnet_created=vnet.created,
            reused=reused,
        )


__all__ = [
    "DEFAULT_INBOUND_RULES",
    "InboundRule",
    "NetworkProvisioner",
    "NetworkResources",
    "VirtualNetworkResult",
]
