"""Filesystem layout: ca/, certs/<domain>/ and ca_backup_<timestamp>/."""

from datetime import datetime
from pathlib import Path
from typing import Optional

from pydantic import BaseModel


CA_DIR_NAME = "ca"
CERTS_DIR_NAME = "certs"
BACKUP_PREFIX = "ca_backup_"
BACKUP_TIMESTAMP_FORMAT = "%Y%m%d_%H%M%S"

CA_KEY_NAME = "rootCA.key"
CA_CERT_NAME = "rootCA.pem"
CA_SERIAL_NAME = "rootCA.srl"
SIGNING_CONFIG_NAME = "openssl.conf"


class InvalidDomainError(ValueError):
    """Raised when a domain name cannot be used as a certificate directory."""
    pass


class CALayout(BaseModel):
    """Paths of the root CA files."""
    ca_dir: Path
    key_path: Path
    cert_path: Path
    serial_path: Path


class DomainLayout(BaseModel):
    """Paths of the files issued for one domain."""
    domain: str
    domain_dir: Path
    key_path: Path
    csr_path: Path
    cert_path: Path
    config_path: Path


def validate_domain(domain: str) -> str:
    """Check that a domain is usable as a path component and a DNS SAN.

    Args:
        domain: Domain name from the command line

    Returns:
        The domain, unchanged

    Raises:
        InvalidDomainError if the name is empty, contains a path separator,
        starts with '-', or is not ASCII (IDNs must be given as punycode)
    """
    if not domain:
        raise InvalidDomainError("Domain name must not be empty")
    if "/" in domain or "\\" in domain or domain in (".", ".."):
        raise InvalidDomainError(f"Domain name must not contain path components: {domain!r}")
    if domain.startswith("-"):
        raise InvalidDomainError(f"Domain name must not start with '-': {domain!r}")
    try:
        domain.encode("ascii")
    except UnicodeEncodeError:
        raise InvalidDomainError(f"Domain name must be ASCII (use punycode for IDNs): {domain!r}")
    return domain


def ca_layout(base_dir: Path) -> CALayout:
    ca_dir = Path(base_dir) / CA_DIR_NAME
    return CALayout(
        ca_dir=ca_dir,
        key_path=ca_dir / CA_KEY_NAME,
        cert_path=ca_dir / CA_CERT_NAME,
        serial_path=ca_dir / CA_SERIAL_NAME,
    )


def domain_layout(base_dir: Path, domain: str) -> DomainLayout:
    validate_domain(domain)
    domain_dir = Path(base_dir) / CERTS_DIR_NAME / domain
    return DomainLayout(
        domain=domain,
        domain_dir=domain_dir,
        key_path=domain_dir / f"{domain}.key",
        csr_path=domain_dir / f"{domain}.csr",
        cert_path=domain_dir / f"{domain}.crt",
        config_path=domain_dir / SIGNING_CONFIG_NAME,
    )


def backup_dir_for(base_dir: Path, when: Optional[datetime] = None) -> Path:
    """Name of the directory an old ca/ is moved to (local time stamp)."""
    when = when or datetime.now()
    return Path(base_dir) / f"{BACKUP_PREFIX}{when.strftime(BACKUP_TIMESTAMP_FORMAT)}"
