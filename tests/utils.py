"""
Test utilities for azlaunch tests.

Fake Azure responses, pollers and call-order helpers shared by the unit tests.
"""

from types import SimpleNamespace
from unittest.mock import Mock

SUBSCRIPTION_ID = "12345678-1234-1234-1234-123456789abc"
RG_ID = f"/subscriptions/{SUBSCRIPTION_ID}/resourceGroups/azlaunch"
NETWORK_PREFIX = f"{RG_ID}/providers/Microsoft.Network"
VNET_ID = f"{NETWORK_PREFIX}/virtualNetworks/azlaunch"
SUBNET_0_ID = f"{VNET_ID}/subnets/azlaunch-subnet-0"
SUBNET_1_ID = f"{VNET_ID}/subnets/azlaunch-subnet-1"
PUBLIC_IP_ID = f"{NETWORK_PREFIX}/publicIPAddresses/azlaunch-ip"
NSG_ID = f"{NETWORK_PREFIX}/networkSecurityGroups/azlaunch-nsg"
NIC_ID = f"{NETWORK_PREFIX}/networkInterfaces/azlaunch-nic"
VM_ID = f"{RG_ID}/providers/Microsoft.Compute/virtualMachines/azlaunch"

# Order the pipeline must issue SDK operations in when nothing exists yet
FRESH_RUN_CALLS = [
    "resource.resource_groups.create_or_update",
    "network.virtual_networks.get",
    "network.virtual_networks.begin_create_or_update",
    "network.public_ip_addresses.begin_create_or_update",
    "network.network_security_groups.begin_create_or_update",
    "network.network_interfaces.begin_create_or_update",
    "compute.virtual_machines.begin_create_or_update",
]


def make_poller(result):
    """Fake LROPoller whose result() returns the given resource."""
    poller = Mock()
    poller.result.return_value = result
    return poller


def azure_resource(resource_id, name=None, **extra):
    """Fake SDK model; SimpleNamespace keeps ``name`` a plain attribute."""
    return SimpleNamespace(id=resource_id, name=name, **extra)


def vnet_response(subnets=None):
    """Virtual network response with both default subnets."""
    if subnets is None:
        subnets = [
            azure_resource(SUBNET_0_ID, "azlaunch-subnet-0"),
            azure_resource(SUBNET_1_ID, "azlaunch-subnet-1"),
        ]
    return azure_resource(VNET_ID, "azlaunch", subnets=subnets)


def provisioning_calls(manager, include_lookups=False):
    """Names of the SDK operations issued, in order.

    Poller ``result()`` calls are skipped. Lookups other than the virtual
    network existence check are skipped unless ``include_lookups`` is set.
    """
    operations = {"create_or_update", "begin_create_or_update", "get", "list"}
    names = []
    for name, _args, _kwargs in manager.mock_calls:
        if "(" in name or name.rsplit(".", 1)[-1] not in operations:
            continue
        is_lookup = name.endswith((".get", ".list"))
        if is_lookup and not include_lookups and name != "network.virtual_networks.get":
            continue
        names.append(name)
    return names
