"""azlaunch - provision one Azure Ubuntu VM

Philosophy:
- Ruthless simplicity: one linear pipeline, the Azure SDK does the heavy lifting
- Security by design (no credentials in code, SSH keys only)
- Fail fast with helpful guidance

The pipeline generates an SSH keypair, authenticates through the Azure CLI
session, builds the network (resource group, virtual network, public IP,
security group, network interface) and creates the VM.
"""

__version__ = "0.1.0"
__all__ = ["__version__"]
