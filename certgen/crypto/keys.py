"""RSA key generation and PEM file helpers."""

import os
from pathlib import Path
from typing import Union

from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa


PUBLIC_EXPONENT = 65537
PRIVATE_FILE_MODE = 0o600
PUBLIC_FILE_MODE = 0o644


def generate_rsa_key(key_size: int) -> rsa.RSAPrivateKey:
    """Generate an RSA private key.

    Args:
        key_size: Modulus size in bits (4096 for the CA, 2048 for leaves)

    Returns:
        RSA private key object
    """
    return rsa.generate_private_key(
        public_exponent=PUBLIC_EXPONENT,
        key_size=key_size,
    )


def write_pem(path: Path, data: bytes, mode: int = PUBLIC_FILE_MODE):
    """Write PEM bytes, replacing any existing file, and set its mode."""
    path = Path(path)
    with open(path, "wb") as f:
        f.write(data)
    os.chmod(path, mode)


def write_private_key(path: Path, key: rsa.RSAPrivateKey):
    """Write an unencrypted private key readable by the owner only.

    The traditional OpenSSL (PKCS#1) format matches what `openssl genrsa`
    produced for existing installations.
    """
    write_pem(path, key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.TraditionalOpenSSL,
        encryption_algorithm=serialization.NoEncryption(),
    ), mode=PRIVATE_FILE_MODE)


def load_private_key(key_path: Union[str, Path]) -> rsa.RSAPrivateKey:
    """Load RSA private key from PEM file.

    Args:
        key_path: Path to private key file

    Returns:
        RSA private key object
    """
    with open(Path(key_path), "rb") as f:
        key = serialization.load_pem_private_key(f.read(), password=None)
    if not isinstance(key, rsa.RSAPrivateKey):
        raise ValueError(f"{key_path} does not contain an RSA private key")
    return key
