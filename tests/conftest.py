"""
Shared test fixtures and configuration for azlaunch tests.

This module provides common fixtures used across all test types:
- Fake Azure management clients with long-running operation pollers
- Fake authenticator
- Isolated configuration directories
"""

import io
from unittest.mock import Mock

import pytest
from azure.core.exceptions import ResourceNotFoundError

from azlaunch.azure_clients import AzureClients
from azlaunch.config_manager import ConfigManager, LaunchConfig
from azlaunch.modules.progress import ProgressDisplay
from azlaunch.provisioning import PIPELINE_STAGES
from tests.utils import (
    NIC_ID,
    NSG_ID,
    PUBLIC_IP_ID,
    RG_ID,
    VM_ID,
    azure_resource,
    make_poller,
    vnet_response,
)

# ============================================================================
# AZURE MOCKING FIXTURES
# ============================================================================


@pytest.fixture
def azure_manager():
    """Parent mock for all clients so mock_calls records cross-client order.

    Default behaviour: nothing exists yet, every create succeeds.
    """
    manager = Mock()

    manager.resource.resource_groups.create_or_update.return_value = azure_resource(
        RG_ID, "azlaunch", location="westus"
    )

    network = manager.network
    not_found = ResourceNotFoundError("Resource not found")

    network.virtual_networks.get.side_effect = not_found
    network.virtual_networks.begin_create_or_update.return_value = make_poller(vnet_response())

    network.public_ip_addresses.get.side_effect = not_found
    network.public_ip_addresses.begin_create_or_update.return_value = make_poller(
        azure_resource(PUBLIC_IP_ID, "azlaunch-ip")
    )

    network.network_security_groups.get.side_effect = not_found
    network.network_security_groups.begin_create_or_update.return_value = make_poller(
        azure_resource(NSG_ID, "azlaunch-nsg")
    )

    network.network_interfaces.get.side_effect = not_found
    network.network_interfaces.begin_create_or_update.return_value = make_poller(
        azure_resource(NIC_ID, "azlaunch-nic")
    )

    manager.compute.virtual_machines.begin_create_or_update.return_value = make_poller(
        azure_resource(VM_ID, "azlaunch", location="westus", provisioning_state="Succeeded")
    )

    return manager


@pytest.fixture
def azure_clients(azure_manager):
    """AzureClients wired to the fake management clients."""
    return AzureClients(
        resource=azure_manager.resource,
        network=azure_manager.network,
        compute=azure_manager.compute,
    )


@pytest.fixture
def mock_authenticator():
    """Authenticator returning a fake credential without touching az CLI."""
    authenticator = Mock()
    authenticator.get_credential.return_value = Mock()
    return authenticator


# ============================================================================
# CONFIGURATION FIXTURES
# ============================================================================


@pytest.fixture
def launch_config(tmp_path) -> LaunchConfig:
    """Default configuration with keys written under tmp_path."""
    key_dir = tmp_path / "keys"
    key_dir.mkdir()
    return LaunchConfig(key_dir=str(key_dir))


@pytest.fixture
def isolated_config(tmp_path, monkeypatch):
    """Point ConfigManager's default location at a temporary directory."""
    config_dir = tmp_path / ".azlaunch"
    monkeypatch.setattr(ConfigManager, "DEFAULT_CONFIG_DIR", config_dir)
    monkeypatch.setattr(ConfigManager, "DEFAULT_CONFIG_FILE", config_dir / "config.toml")
    return config_dir / "config.toml"


@pytest.fixture
def quiet_progress():
    """Progress display writing to an in-memory buffer."""
    return ProgressDisplay(len(PIPELINE_STAGES), use_unicode=False, output_file=io.StringIO())


@pytest.fixture
def fast_keys(monkeypatch):
    """Use 2048-bit keys so pipeline tests stay fast."""
    from azlaunch.modules.ssh_keys import SSHKeyManager

    monkeypatch.setattr(SSHKeyManager, "KEY_SIZE", 2048)
