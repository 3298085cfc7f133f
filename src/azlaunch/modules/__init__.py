"""azlaunch modules - self-contained bricks used by the provisioning pipeline

Each module is a self-contained component with a clear contract:
- SSH Key Manager: Generate the keypair and persist it with secure permissions
- Progress Display: Report pipeline stages to the console
"""
