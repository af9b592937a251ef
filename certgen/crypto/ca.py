"""Root CA bootstrap: create once, reuse, or back up and replace."""

from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Optional, Tuple

from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from cryptography.x509.oid import NameOID
from pydantic import BaseModel

from certgen.common.config import Settings, Subject
from certgen.common.layout import CALayout, backup_dir_for, ca_layout
from certgen.crypto.keys import (
    PUBLIC_FILE_MODE,
    generate_rsa_key,
    load_private_key,
    write_pem,
    write_private_key,
)


class CertificateAuthorityError(Exception):
    """Raised when the root CA cannot be backed up, created or loaded."""
    pass


class CABootstrapResult(BaseModel):
    """Outcome of ensure_root_ca."""
    layout: CALayout
    created: bool
    backup_dir: Optional[Path] = None


def ca_name(subject: Subject) -> x509.Name:
    return x509.Name([
        x509.NameAttribute(NameOID.COUNTRY_NAME, subject.country),
        x509.NameAttribute(NameOID.STATE_OR_PROVINCE_NAME, subject.state),
        x509.NameAttribute(NameOID.LOCALITY_NAME, subject.locality),
        x509.NameAttribute(NameOID.ORGANIZATION_NAME, subject.organization),
        x509.NameAttribute(NameOID.ORGANIZATIONAL_UNIT_NAME, subject.organizational_unit),
        x509.NameAttribute(NameOID.COMMON_NAME, subject.ca_common_name),
    ])


def ca_initialized(layout: CALayout) -> bool:
    """True when both the CA key and certificate files exist.

    File presence is the only check; existing files are not parsed.
    """
    return layout.key_path.is_file() and layout.cert_path.is_file()


def backup_existing_ca(base_dir: Path, when: Optional[datetime] = None) -> Optional[Path]:
    """Move an existing ca/ directory to ca_backup_<timestamp>/.

    Args:
        base_dir: Directory holding ca/
        when: Time used for the backup name (defaults to now)

    Returns:
        Path of the backup directory, or None if there was no ca/ to move

    Raises:
        CertificateAuthorityError if the backup directory already exists
        OSError if the rename fails
    """
    layout = ca_layout(base_dir)
    if not layout.ca_dir.is_dir():
        return None

    backup_dir = backup_dir_for(base_dir, when)
    if backup_dir.exists():
        raise CertificateAuthorityError(f"Backup directory already exists: {backup_dir}")

    layout.ca_dir.rename(backup_dir)
    return backup_dir


def build_root_certificate(
    key: rsa.RSAPrivateKey,
    subject: Subject,
    days: int,
) -> x509.Certificate:
    """Build the self-signed root certificate.

    Args:
        key: CA private key
        subject: Distinguished name fields
        days: Validity period in days

    Returns:
        Self-signed X.509 certificate
    """
    name = ca_name(subject)
    now = datetime.now(timezone.utc)
    public_key = key.public_key()
    return x509.CertificateBuilder().subject_name(
        name
    ).issuer_name(
        name
    ).public_key(
        public_key
    ).serial_number(
        x509.random_serial_number()
    ).not_valid_before(
        now
    ).not_valid_after(
        now + timedelta(days=days)
    ).add_extension(
        x509.SubjectKeyIdentifier.from_public_key(public_key),
        critical=False,
    ).add_extension(
        x509.AuthorityKeyIdentifier.from_issuer_public_key(public_key),
        critical=False,
    ).add_extension(
        x509.BasicConstraints(ca=True, path_length=None),
        critical=True,
    ).add_extension(
        x509.KeyUsage(
            digital_signature=True,
            content_commitment=False,
            key_encipherment=False,
            data_encipherment=False,
            key_agreement=False,
            key_cert_sign=True,
            crl_sign=True,
            encipher_only=False,
            decipher_only=False,
        ),
        critical=True,
    ).sign(key, hashes.SHA256())


def create_root_ca(settings: Settings, layout: CALayout) -> Tuple[rsa.RSAPrivateKey, x509.Certificate]:
    """Generate a CA key and self-signed certificate and write both.

    Any existing key or certificate at the layout paths is replaced.
    """
    layout.ca_dir.mkdir(parents=True, exist_ok=True)

    key = generate_rsa_key(settings.ca_key_size)
    cert = build_root_certificate(key, settings.subject, settings.ca_days)

    write_private_key(layout.key_path, key)
    write_pem(layout.cert_path, cert.public_bytes(serialization.Encoding.PEM), mode=PUBLIC_FILE_MODE)
    return key, cert


def ensure_root_ca(settings: Settings, force_new: bool = False) -> CABootstrapResult:
    """Make sure a root CA exists under <base_dir>/ca/.

    Args:
        settings: Run settings
        force_new: Back up an existing ca/ directory and create a new CA

    Returns:
        CABootstrapResult telling whether a CA was created and where the
        previous one was moved
    """
    backup_dir = None
    if force_new:
        backup_dir = backup_existing_ca(settings.base_dir)

    layout = ca_layout(settings.base_dir)
    layout.ca_dir.mkdir(parents=True, exist_ok=True)

    created = False
    if not ca_initialized(layout):
        create_root_ca(settings, layout)
        created = True

    return CABootstrapResult(layout=layout, created=created, backup_dir=backup_dir)


def load_ca_key_and_cert(layout: CALayout) -> Tuple[rsa.RSAPrivateKey, x509.Certificate]:
    """Load CA private key and certificate.

    Returns:
        Tuple of (private_key, certificate)

    Raises:
        CertificateAuthorityError if the CA has not been created yet
    """
    if not ca_initialized(layout):
        raise CertificateAuthorityError(f"Root CA not found in {layout.ca_dir}")

    ca_key = load_private_key(layout.key_path)
    with open(layout.cert_path, "rb") as f:
        ca_cert = x509.load_pem_x509_certificate(f.read())
    return ca_key, ca_cert
