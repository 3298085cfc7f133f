"""Provisioning pipeline.

Runs the stages strictly in order, threading identifiers from one stage to the
next:

    SSH keys -> credential -> network (exists check, build) -> virtual machine

The pipeline is forward-only. The first error propagates to the caller and any
resource already created is left in place.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING, TypeVar

from azlaunch.azure_auth import AzureAuthenticator
from azlaunch.azure_clients import AzureClients
from azlaunch.exceptions import AzlaunchError, ConfigError
from azlaunch.modules.progress import ProgressDisplay, StageTiming
from azlaunch.modules.ssh_keys import SSHKeyManager, SSHKeyPair
from azlaunch.network_provisioner import NetworkProvisioner, NetworkResources
from azlaunch.vm_provisioning import VMDetails, VMProvisioner

if TYPE_CHECKING:
    from azure.core.credentials import TokenCredential

    from azlaunch.config_manager import LaunchConfig

logger = logging.getLogger(__name__)

T = TypeVar("T")

PIPELINE_STAGES = (
    "Generating SSH keypair",
    "Resolving Azure credential",
    "Provisioning network resources",
    "Creating virtual machine",
)


@dataclass
class ProvisioningResult:
    """Outcome of a successful provisioning run."""

    vm: VMDetails
    network: NetworkResources
    key_pair: SSHKeyPair
    timings: list[StageTiming]

    @property
    def vm_id(self) -> str:
        return self.vm.id

    @property
    def elapsed_seconds(self) -> float:
        return sum(t.seconds for t in self.timings)


class ProvisioningPipeline:
    """Stand up one VM from scratch.

    Collaborators are injected so the pipeline can run against fakes:
    ``authenticator`` resolves the credential, ``client_factory`` turns it into
    management clients, ``progress`` reports each stage.
    """

    def __init__(
        self,
        config: LaunchConfig,
        subscription_id: str,
        authenticator: AzureAuthenticator | None = None,
        client_factory: Callable[[TokenCredential, str], AzureClients] = AzureClients.create,
        progress: ProgressDisplay | None = None,
    ):
        if not subscription_id:
            raise ConfigError("A subscription ID is required")

        self.config = config
        self.subscription_id = subscription_id
        self.authenticator = authenticator or AzureAuthenticator()
        self.client_factory = client_factory
        self.progress = progress or ProgressDisplay(len(PIPELINE_STAGES))

    def _stage(self, name: str, action: Callable[[], T]) -> T:
        self.progress.begin_stage(name)
        try:
            result = action()
        except AzlaunchError:
            self.progress.end_stage(success=False)
            raise
        self.progress.end_stage(success=True)
        return result

    def _substep(self, message: str) -> None:
        self.progress.step(message)

    def run(self) -> ProvisioningResult:
        """Execute every stage.

        Returns:
            ProvisioningResult whose vm_id is the ID from the VM creation response

        Raises:
            AzlaunchError: The first failure, from whichever stage raised it
        """
        keys_stage, credential_stage, network_stage, vm_stage = PIPELINE_STAGES
        timings_before = len(self.progress.timings)

        key_pair = self._stage(
            keys_stage,
            lambda: SSHKeyManager.generate_key_pair(
                self.config.key_directory,
                self.config.private_key_name,
                self.config.public_key_name,
            ),
        )

        credential = self._stage(credential_stage, self.authenticator.get_credential)
        clients = self.client_factory(credential, self.subscription_id)

        network = self._stage(
            network_stage,
            NetworkProvisioner(clients, self.config, self._substep).provision,
        )

        vm_provisioner = VMProvisioner(clients, self.config, self._substep)
        vm = self._stage(
            vm_stage,
            lambda: vm_provisioner.create_vm(
                network.resource_group,
                network.network_interface_id,
                key_pair.public_key_content,
            ),
        )

        logger.debug(f"Provisioning finished: {vm.name}")
        return ProvisioningResult(
            vm=vm,
            network=network,
            key_pair=key_pair,
            timings=self.progress.timings[timings_before:],
        )


__all__ = ["PIPELINE_STAGES", "ProvisioningPipeline", "ProvisioningResult"]
