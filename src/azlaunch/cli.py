"""azlaunch command-line interface.

Commands:
    up            Provision the VM (keys, credential, network, compute)
    config show   Display the effective configuration
    config set    Update one configuration value
"""

import logging
import sys
from typing import NoReturn

import click
from rich.console import Console
from rich.table import Table

from azlaunch import __version__
from azlaunch.azure_auth import AzureAuthenticator
from azlaunch.config_manager import SUBSCRIPTION_ENV_VAR, ConfigManager
from azlaunch.exceptions import AzlaunchError
from azlaunch.log_sanitizer import LogSanitizer
from azlaunch.modules.progress import format_duration
from azlaunch.provisioning import ProvisioningPipeline, ProvisioningResult

logger = logging.getLogger(__name__)
console = Console()


def _fail(message: str) -> NoReturn:
    click.echo(f"Error: {message}", err=True)
    sys.exit(1)


def _print_summary(result: ProvisioningResult) -> None:
    """Show every resource the run created or reused."""
    network = result.network
    table = Table(title="Provisioned Resources", show_header=True, header_style="bold")
    table.add_column("Resource", style="cyan")
    table.add_column("Value")

    table.add_row("Resource group", network.resource_group)
    table.add_row("Location", network.location)
    vnet_state = "created" if network.vnet_created else "reused"
    table.add_row("Virtual network", f"{network.vnet_name} ({vnet_state})")
    table.add_row("Subnet", network.subnet_id)
    table.add_row("Public IP", network.public_ip_id)
    table.add_row("Security group", network.security_group_id)
    table.add_row("Network interface", network.network_interface_id)
    table.add_row("Virtual machine", result.vm.id)
    table.add_row("Private key", str(result.key_pair.private_path))
    table.add_row("Elapsed", format_duration(result.elapsed_seconds))

    console.print(table)
    if network.reused:
        console.print(f"[yellow]Reused existing: {', '.join(network.reused)}[/yellow]")


@click.group()
@click.version_option(version=__version__, prog_name="azlaunch")
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
def main(verbose: bool) -> None:
    """azlaunch - provision one Azure Ubuntu VM with SSH key access.

    \b
    Examples:
        # Provision using the SUBSCRIPTION_ID environment variable
        $ export SUBSCRIPTION_ID=00000000-0000-0000-0000-000000000000
        $ azlaunch up

        # Override region and size
        $ azlaunch up --location westeurope --vm-size Standard_D2s_v5

    \b
    CONFIGURATION:
        Config file: ~/.azlaunch/config.toml
    """
    logging.basicConfig(level=logging.DEBUG if verbose else logging.INFO, format="%(message)s")
    if not verbose:
        # The SDK logs every HTTP request at INFO
        logging.getLogger("azure").setLevel(logging.WARNING)


@main.command()
@click.option(
    "--subscription-id",
    default=None,
    help=f"Azure subscription ID (default: ${SUBSCRIPTION_ENV_VAR})",
)
@click.option("--config", "config_path", default=None, help="Config file path")
@click.option("--key-dir", default=None, help="Directory for mykey.pem/mykey.pub (default: cwd)")
@click.option("--resource-group", "--rg", "resource_group", default=None, help="Resource group")
@click.option("--location", default=None, help="Azure region")
@click.option("--vm-size", default=None, help="VM size")
@click.option(
    "--always-create",
    is_flag=True,
    help="Submit creates for public IP, security group and NIC even if they exist",
)
def up(
    subscription_id: str | None,
    config_path: str | None,
    key_dir: str | None,
    resource_group: str | None,
    location: str | None,
    vm_size: str | None,
    always_create: bool,
) -> None:
    """Provision the VM and its network.

    Generates mykey.pem/mykey.pub, authenticates through the Azure CLI session,
    then creates resource group, virtual network, public IP, security group,
    network interface and virtual machine, in that order.
    """
    try:
        resolved_subscription = ConfigManager.get_subscription_id(subscription_id)
        config = ConfigManager.load_config(config_path).with_overrides(
            resource_group=resource_group,
            location=location,
            vm_size=vm_size,
            key_dir=key_dir,
        )
        if always_create:
            config = config.with_overrides(reuse_existing=False)

        authenticator = AzureAuthenticator()
        if not authenticator.validate_subscription_id(resolved_subscription):
            logger.warning("Subscription ID does not look like a GUID; continuing anyway")

        result = ProvisioningPipeline(
            config, resolved_subscription, authenticator=authenticator
        ).run()

    except AzlaunchError as e:
        _fail(LogSanitizer.sanitize_exception(e))
    except Exception as e:
        logger.debug("Unexpected provisioning failure", exc_info=True)
        _fail(f"Unexpected error: {LogSanitizer.sanitize_exception(e)}")

    click.echo(f"Virtual Machine {result.vm_id}")
    _print_summary(result)


@main.group(name="config")
def config_group() -> None:
    """Show or change saved defaults."""
    pass


@config_group.command(name="show")
@click.option("--config", "config_path", default=None, help="Config file path")
def config_show(config_path: str | None) -> None:
    """Display the effective configuration."""
    try:
        config = ConfigManager.load_config(config_path)
    except AzlaunchError as e:
        _fail(str(e))

    table = Table(title="azlaunch configuration", show_header=True, header_style="bold")
    table.add_column("Key", style="cyan")
    table.add_column("Value")
    for key, value in config.to_dict().items():
        if isinstance(value, dict):
            value = ", ".join(f"{k}={v}" for k, v in value.items())
        table.add_row(key, str(value))

    console.print(table)


@config_group.command(name="set")
@click.argument("key")
@click.argument("value")
@click.option("--config", "config_path", default=None, help="Config file path")
def config_set(key: str, value: str, config_path: str | None) -> None:
    """Set KEY to VALUE in the config file."""
    try:
        config = ConfigManager.set_value(key, value, config_path)
    except AzlaunchError as e:
        _fail(str(e))

    click.echo(f"Set {key} = {getattr(config, key)}")


__all__ = ["main"]


if __name__ == "__main__":
    main()
