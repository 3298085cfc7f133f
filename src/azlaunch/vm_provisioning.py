"""VM provisioning module.

Creates the Ubuntu VM on top of the network interface built by the network
stage, with SSH public-key authentication only.

Security:
- SSH key authentication only (password authentication disabled)
- Sanitized error messages
"""

import logging
from collections.abc import Callable
from dataclasses import dataclass

from azure.core.exceptions import AzureError
from azure.mgmt.compute.models import (
    DiskCreateOptionTypes,
    HardwareProfile,
    ImageReference,
    LinuxConfiguration,
    ManagedDiskParameters,
    NetworkInterfaceReference,
    NetworkProfile,
    OSDisk,
    OSProfile,
    ResourceIdentityType,
    SshConfiguration,
    SshPublicKey,
    StorageProfile,
    VirtualMachine,
    VirtualMachineIdentity,
)

from azlaunch.azure_clients import AzureClients
from azlaunch.config_manager import LaunchConfig
from azlaunch.exceptions import ProvisioningError
from azlaunch.log_sanitizer import LogSanitizer

logger = logging.getLogger(__name__)


@dataclass
class VMDetails:
    """VM provisioning result details."""

    id: str
    name: str
    location: str
    size: str
    provisioning_state: str = "Unknown"


class VMProvisioner:
    """Provision one Azure Ubuntu VM.

    The request combines a fixed image reference, a managed OS disk, the VM
    size, an OS profile injecting the generated public key for the admin user,
    and a network profile referencing the prepared network interface.
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

    def build_vm_parameters(self, nic_id: str, ssh_public_key: str) -> VirtualMachine:
        """Build the VM creation request.

        Args:
            nic_id: Network interface resource ID
            ssh_public_key: OpenSSH public key line

        Returns:
            VirtualMachine model ready for begin_create_or_update

        Raises:
            ProvisioningError: If the public key is empty
        """
        if not ssh_public_key or not ssh_public_key.strip():
            raise ProvisioningError("An SSH public key is required to provision the VM")

        admin = self.config.admin_username
        return VirtualMachine(
            location=self.config.location,
            identity=VirtualMachineIdentity(type=ResourceIdentityType.NONE),
            storage_profile=StorageProfile(
                image_reference=ImageReference(
                    publisher=self.config.image_publisher,
                    offer=self.config.image_offer,
                    sku=self.config.image_sku,
                    version=self.config.image_version,
                ),
                os_disk=OSDisk(
                    name=self.config.os_disk_name,
                    create_option=DiskCreateOptionTypes.FROM_IMAGE,
                    caching="ReadWrite",
                    managed_disk=ManagedDiskParameters(
                        storage_account_type=self.config.storage_account_type
                    ),
                ),
            ),
            hardware_profile=HardwareProfile(vm_size=self.config.vm_size),
            os_profile=OSProfile(
                computer_name=self.config.vm_name,
                admin_username=admin,
                linux_configuration=LinuxConfiguration(
                    disable_password_authentication=True,
                    ssh=SshConfiguration(
                        public_keys=[
                            SshPublicKey(
                                path=f"/home/{admin}/.ssh/authorized_keys",
                                key_data=ssh_public_key.strip(),
                            )
                        ]
                    ),
                ),
            ),
            network_profile=NetworkProfile(
                network_interfaces=[NetworkInterfaceReference(id=nic_id)]
            ),
        )

    def create_vm(self, resource_group: str, nic_id: str, ssh_public_key: str) -> VMDetails:
        """Submit the VM creation and block until it completes.

        Returns:
            VMDetails built from the completion response

        Raises:
            ProvisioningError: If submission or polling fails (no retry, no rollback)
        """
        parameters = self.build_vm_parameters(nic_id, ssh_public_key)
        name = self.config.vm_name

        self._report(f"Creating virtual machine {name} ({self.config.vm_size})")
        try:
            poller = self.clients.compute.virtual_machines.begin_create_or_update(
                resource_group, name, parameters
            )
            vm = poller.result()
        except AzureError as e:
            raise ProvisioningError(
                LogSanitizer.create_safe_error_message(e, f"Failed to create virtual machine {name}")
            ) from e

        if not vm.id:
            raise ProvisioningError(f"Virtual machine {name} completed without a resource ID")

        logger.info(f"Created virtual machine {name}")
        return VMDetails(
            id=vm.id,
            name=vm.name or name,
            location=vm.location or self.config.location,
            size=self.config.vm_size,
            provisioning_state=vm.provisioning_state or "Unknown",
        )


__all__ = ["VMDetails", "VMProvisioner"]
