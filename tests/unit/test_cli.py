"""
Unit tests for CLI interface module.

Test Coverage:
- Subscription resolution and missing-subscription exit
- Option overrides passed to the pipeline
- Error message formatting and exit codes
- End-to-end `up` against fake Azure clients
- `config show` / `config set`
"""

from unittest.mock import Mock, patch

import pytest
from azure.core.exceptions import HttpResponseError
from click.testing import CliRunner

from azlaunch import __version__
from azlaunch.cli import main
from azlaunch.exceptions import AuthenticationError
from azlaunch.provisioning import ProvisioningPipeline
from tests.utils import FRESH_RUN_CALLS, SUBSCRIPTION_ID, VM_ID, provisioning_calls


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def mock_pipeline():
    with patch("azlaunch.cli.ProvisioningPipeline") as pipeline_cls:
        yield pipeline_cls


# ============================================================================
# BASIC COMMAND TESTS
# ============================================================================


class TestCLIBasics:
    """Test top-level CLI behaviour."""

    def test_version(self, runner):
        result = runner.invoke(main, ["--version"])
        assert result.exit_code == 0
        assert __version__ in result.output

    def test_help_lists_commands(self, runner):
        result = runner.invoke(main, ["--help"])
        assert result.exit_code == 0
        assert "up" in result.output
        assert "config" in result.output

    def test_up_help_shows_options(self, runner):
        result = runner.invoke(main, ["up", "--help"])
        assert result.exit_code == 0
        for option in ("--subscription-id", "--key-dir", "--location", "--always-create"):
            assert option in result.output


# ============================================================================
# UP COMMAND TESTS
# ============================================================================


class TestUpCommand:
    """Test `azlaunch up` with the pipeline mocked out."""

    def test_missing_subscription_exits_before_any_work(
        self, runner, mock_pipeline, isolated_config
    ):
        """Test that no pipeline is built without SUBSCRIPTION_ID."""
        result = runner.invoke(main, ["up"])

        assert result.exit_code == 1
        assert "No subscription ID was provided" in result.output
        mock_pipeline.assert_not_called()

    def test_subscription_from_environment(self, runner, mock_pipeline, isolated_config):
        mock_pipeline.return_value.run.return_value.vm_id = VM_ID

        with patch("azlaunch.cli._print_summary"):
            result = runner.invoke(main, ["up"], env={"SUBSCRIPTION_ID": SUBSCRIPTION_ID})

        assert result.exit_code == 0
        assert mock_pipeline.call_args.args[1] == SUBSCRIPTION_ID
        assert f"Virtual Machine {VM_ID}" in result.output

    def test_subscription_option_overrides_environment(
        self, runner, mock_pipeline, isolated_config
    ):
        with patch("azlaunch.cli._print_summary"):
            runner.invoke(
                main,
                ["up", "--subscription-id", "cli-sub"],
                env={"SUBSCRIPTION_ID": SUBSCRIPTION_ID},
            )

        assert mock_pipeline.call_args.args[1] == "cli-sub"

    def test_options_override_config(self, runner, mock_pipeline, isolated_config, tmp_path):
        """Test that CLI options reach the pipeline configuration."""
        with patch("azlaunch.cli._print_summary"):
            runner.invoke(
                main,
                [
                    "up",
                    "--rg",
                    "my-rg",
                    "--location",
                    "eastus",
                    "--vm-size",
                    "Standard_B2s",
                    "--key-dir",
                    str(tmp_path),
                    "--always-create",
                ],
                env={"SUBSCRIPTION_ID": SUBSCRIPTION_ID},
            )

        config = mock_pipeline.call_args.args[0]
        assert config.resource_group == "my-rg"
        assert config.location == "eastus"
        assert config.vm_size == "Standard_B2s"
        assert config.key_dir == str(tmp_path)
        assert config.reuse_existing is False

    def test_defaults_reuse_existing(self, runner, mock_pipeline, isolated_config):
        with patch("azlaunch.cli._print_summary"):
            runner.invoke(main, ["up"], env={"SUBSCRIPTION_ID": SUBSCRIPTION_ID})

        assert mock_pipeline.call_args.args[0].reuse_existing is True

    def test_pipeline_error_exits_with_sanitized_message(
        self, runner, mock_pipeline, isolated_config
    ):
        mock_pipeline.return_value.run.side_effect = AuthenticationError(
            "No active Azure CLI session. Please run: az login\nError: access_token=secret123"
        )

        result = runner.invoke(main, ["up"], env={"SUBSCRIPTION_ID": SUBSCRIPTION_ID})

        assert result.exit_code == 1
        assert "Error: No active Azure CLI session" in result.output
        assert "secret123" not in result.output

    def test_unexpected_error_exits_nonzero(self, runner, mock_pipeline, isolated_config):
        mock_pipeline.return_value.run.side_effect = RuntimeError("boom")

        result = runner.invoke(main, ["up"], env={"SUBSCRIPTION_ID": SUBSCRIPTION_ID})

        assert result.exit_code == 1
        assert "Unexpected error: boom" in result.output

    def test_missing_config_file(self, runner, mock_pipeline, tmp_path):
        result = runner.invoke(
            main,
            ["up", "--config", str(tmp_path / "absent.toml")],
            env={"SUBSCRIPTION_ID": SUBSCRIPTION_ID},
        )

        assert result.exit_code == 1
        assert "Config file not found" in result.output
        mock_pipeline.assert_not_called()


# ============================================================================
# END-TO-END TESTS (FAKE AZURE)
# ============================================================================


@pytest.mark.usefixtures("fast_keys", "isolated_config")
class TestUpEndToEnd:
    """Run `up` through the real pipeline against fake management clients."""

    @pytest.fixture
    def fake_azure(self, monkeypatch, azure_clients, mock_authenticator, quiet_progress):
        def build(config, subscription_id, authenticator=None):
            return ProvisioningPipeline(
                config,
                subscription_id,
                authenticator=mock_authenticator,
                client_factory=Mock(return_value=azure_clients),
                progress=quiet_progress,
            )

        monkeypatch.setattr("azlaunch.cli.ProvisioningPipeline", build)

    @pytest.mark.usefixtures("fake_azure")
    def test_up_provisions_in_order(self, runner, azure_manager, tmp_path):
        result = runner.invoke(
            main,
            ["up", "--key-dir", str(tmp_path)],
            env={"SUBSCRIPTION_ID": SUBSCRIPTION_ID},
        )

        assert result.exit_code == 0, result.output
        assert f"Virtual Machine {VM_ID}" in result.output
        assert "Provisioned Resources" in result.output
        assert "Elapsed" in result.output
        assert provisioning_calls(azure_manager) == FRESH_RUN_CALLS
        assert (tmp_path / "mykey.pem").exists()
        assert (tmp_path / "mykey.pub").exists()

    @pytest.mark.usefixtures("fake_azure")
    def test_up_network_failure(self, runner, azure_manager, tmp_path):
        network = azure_manager.network
        network.virtual_networks.get.side_effect = HttpResponseError(message="Forbidden")

        result = runner.invoke(
            main,
            ["up", "--key-dir", str(tmp_path)],
            env={"SUBSCRIPTION_ID": SUBSCRIPTION_ID},
        )

        assert result.exit_code == 1
        assert "Failed to look up virtual network azlaunch" in result.output
        azure_manager.compute.virtual_machines.begin_create_or_update.assert_not_called()


# ============================================================================
# CONFIG COMMAND TESTS
# ============================================================================


class TestConfigCommands:
    """Test `azlaunch config show` and `azlaunch config set`."""

    def test_config_show_defaults(self, runner, isolated_config):
        result = runner.invoke(main, ["config", "show"])

        assert result.exit_code == 0
        assert "azlaunch configuration" in result.output
        assert "resource_group" in result.output
        assert "westus" in result.output

    def test_config_set_then_show(self, runner, isolated_config):
        result = runner.invoke(main, ["config", "set", "location", "eastus"])

        assert result.exit_code == 0
        assert "Set location = eastus" in result.output
        assert isolated_config.exists()

        result = runner.invoke(main, ["config", "show"])
        assert "eastus" in result.output

    def test_config_set_unknown_key(self, runner, isolated_config):
        result = runner.invoke(main, ["config", "set", "fleet_size", "3"])

        assert result.exit_code == 1
        assert "Unknown config key: fleet_size" in result.output

    def test_config_show_invalid_file(self, runner, tmp_path):
        config_file = tmp_path / "broken.toml"
        config_file.write_text("location = ")

        result = runner.invoke(main, ["config", "show", "--config", str(config_file)])

        assert result.exit_code == 1
        assert "Failed to load config" in result.output
