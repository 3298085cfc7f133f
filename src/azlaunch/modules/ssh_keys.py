"""
SSH Key Manager Module

Generate a fresh SSH keypair for VM access with secure permissions.

Security Requirements:
- Private key permissions: 0600 (read/write owner only)
- Public key permissions: 0644 (readable by all)
- Never log or transmit private key
- RSA 4096 (accepted by every Azure Linux image)
"""

import logging
import os
from dataclasses import dataclass
from pathlib import Path

from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa

from azlaunch.exceptions import SSHKeyError

logger = logging.getLogger(__name__)


@dataclass
class SSHKeyPair:
    """SSH key pair information."""

    private_path: Path
    public_path: Path
    public_key_content: str


class SSHKeyManager:
    """
    Generate SSH keypairs for VM provisioning.

    A new keypair is generated on every run. Files at the target paths are
    overwritten and their permissions re-applied.

    Security:
    - Private key: 0600 (-rw-------)
    - Public key: 0644 (-rw-r--r--)
    - Never logs private key content
    """

    KEY_SIZE = 4096
    PUBLIC_EXPONENT = 65537
    DEFAULT_PRIVATE_NAME = "mykey.pem"
    DEFAULT_PUBLIC_NAME = "mykey.pub"

    @classmethod
    def generate_key_pair(
        cls,
        directory: Path | None = None,
        private_name: str = DEFAULT_PRIVATE_NAME,
        public_name: str = DEFAULT_PUBLIC_NAME,
    ) -> SSHKeyPair:
        """
        Generate a keypair and persist both halves.

        Args:
            directory: Target directory (default: current working directory)
            private_name: Private key file name
            public_name: Public key file name

        Returns:
            SSHKeyPair: Key pair information

        Raises:
            SSHKeyError: If key generation or either file write fails

        Example:
            >>> keys = SSHKeyManager.generate_key_pair()
            >>> print(keys.public_key_content)
            ssh-rsa AAAAB3NzaC1yc2E...
        """
        target_dir = Path(directory) if directory is not None else Path.cwd()
        private_path = target_dir / private_name
        public_path = target_dir / public_name

        logger.info(f"Generating new SSH key: {private_path}")
        private_bytes, public_bytes = cls._generate_key_material()

        cls._write_key_file(private_path, private_bytes, 0o600)
        cls._write_key_file(public_path, public_bytes, 0o644)

        logger.info(f"Private key: {private_path}")
        logger.info(f"Public key: {public_path}")

        return SSHKeyPair(
            private_path=private_path,
            public_path=public_path,
            public_key_content=public_bytes.decode("ascii").strip(),
        )

    @classmethod
    def _generate_key_material(cls) -> tuple[bytes, bytes]:
        """
        Generate RSA key material.

        Returns:
            Tuple of (PEM private key, OpenSSH public key line)

        Raises:
            SSHKeyError: If generation fails
        """
        try:
            private_key = rsa.generate_private_key(
                public_exponent=cls.PUBLIC_EXPONENT, key_size=cls.KEY_SIZE
            )
            private_bytes = private_key.private_bytes(
                encoding=serialization.Encoding.PEM,
                format=serialization.PrivateFormat.TraditionalOpenSSL,
                encryption_algorithm=serialization.NoEncryption(),
            )
            public_bytes = private_key.public_key().public_bytes(
                encoding=serialization.Encoding.OpenSSH,
                format=serialization.PublicFormat.OpenSSH,
            )
        except (ValueError, TypeError) as e:
            raise SSHKeyError(f"Failed to generate SSH key: {e}") from e

        logger.debug("SSH key material generated")
        return private_bytes, public_bytes + b"\n"

    @classmethod
    def _write_key_file(cls, path: Path, content: bytes, mode: int) -> None:
        """
        Write key content through a fresh temporary file, then rename it over path.

        The bytes only ever land in a file created with the final mode, so an
        existing world-readable file never holds the new key.

        Raises:
            SSHKeyError: If the write fails
        """
        temp_path = path.with_name(f".{path.name}.tmp")
        try:
            temp_path.unlink(missing_ok=True)
            fd = os.open(temp_path, os.O_WRONLY | os.O_CREAT | os.O_EXCL, mode)
            with os.fdopen(fd, "wb") as f:
                # umask may have narrowed the creation mode
                os.fchmod(f.fileno(), mode)
                f.write(content)
            os.replace(temp_path, path)
        except OSError as e:
            logger.error(f"Failed to write key file {path}: {e.strerror}")
            temp_path.unlink(missing_ok=True)
            raise SSHKeyError(f"Failed to write {path}: {e}") from e

        logger.debug(f"Wrote {path} with permissions {oct(mode)}")

    @classmethod
    def read_public_key(cls, public_path: Path) -> str:
        """
        Read public key content for VM provisioning.

        Raises:
            SSHKeyError: If public key not found, empty or unreadable
        """
        public_path = Path(public_path).expanduser()

        if not public_path.exists():
            raise SSHKeyError(f"Public key not found: {public_path}")

        try:
            content = public_path.read_text().strip()
        except OSError as e:
            raise SSHKeyError(f"Failed to read public key: {e}") from e

        if not content:
            raise SSHKeyError(f"Public key is empty: {public_path}")

        return content


__all__ = ["SSHKeyManager", "SSHKeyPair"]
