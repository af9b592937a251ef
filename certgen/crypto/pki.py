"""X.509 validation: signed-by-CA, validity window, SAN."""

from datetime import datetime, timezone
from pathlib import Path
from typing import List, Optional, Union

from cryptography import x509
from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric import padding, rsa
from cryptography.x509.oid import ExtensionOID


class PKIValidationError(Exception):
    """Exception raised when certificate validation fails."""
    pass


def load_certificate(cert_path: Union[str, Path]) -> x509.Certificate:
    """Load X.509 certificate from a PEM file.

    Args:
        cert_path: Path to certificate file

    Returns:
        Certificate object
    """
    try:
        with open(Path(cert_path), "rb") as f:
            return x509.load_pem_x509_certificate(f.read())
    except (OSError, ValueError) as e:
        raise PKIValidationError(f"Failed to load certificate {cert_path}: {e}")


def verify_certificate_chain(cert: x509.Certificate, ca_cert: x509.Certificate) -> bool:
    """Verify that certificate is signed by the CA.

    Args:
        cert: Certificate to verify
        ca_cert: CA certificate (issuer)

    Returns:
        True if valid, raises PKIValidationError otherwise
    """
    if cert.issuer != ca_cert.subject:
        raise PKIValidationError("Certificate issuer does not match CA subject")

    ca_public_key = ca_cert.public_key()
    if not isinstance(ca_public_key, rsa.RSAPublicKey):
        raise PKIValidationError("CA certificate does not contain an RSA public key")

    try:
        ca_public_key.verify(
            cert.signature,
            cert.tbs_certificate_bytes,
            padding.PKCS1v15(),
            cert.signature_hash_algorithm,
        )
    except InvalidSignature:
        raise PKIValidationError("Certificate signature verification failed")

    return True


def check_certificate_validity(cert: x509.Certificate, now: Optional[datetime] = None) -> bool:
    """Check if certificate is within validity period.

    Args:
        cert: Certificate to check
        now: Reference time (defaults to the current UTC time)

    Returns:
        True if valid, raises PKIValidationError otherwise
    """
    now = now or datetime.now(timezone.utc)

    if cert.not_valid_before_utc > now:
        raise PKIValidationError(f"Certificate not yet valid (valid from {cert.not_valid_before_utc})")

    if cert.not_valid_after_utc < now:
        raise PKIValidationError(f"Certificate expired (expired on {cert.not_valid_after_utc})")

    return True


def get_dns_names(cert: x509.Certificate) -> List[str]:
    """DNS names listed in the Subject Alternative Name extension."""
    try:
        san_ext = cert.extensions.get_extension_for_oid(ExtensionOID.SUBJECT_ALTERNATIVE_NAME)
    except x509.ExtensionNotFound:
        return []
    return san_ext.value.get_values_for_type(x509.DNSName)


def get_certificate_fingerprint(cert: x509.Certificate) -> str:
    """Get SHA-256 fingerprint of certificate.

    Args:
        cert: Certificate object

    Returns:
        Hex-encoded SHA-256 fingerprint
    """
    return cert.fingerprint(hashes.SHA256()).hex()


def verify_issued_certificate(
    cert_path: Union[str, Path],
    ca_cert_path: Union[str, Path],
    expected_domain: Optional[str] = None,
) -> x509.Certificate:
    """Comprehensive certificate verification.

    Performs the following checks:
    1. Load certificate and CA certificate
    2. Verify certificate chain (signed by CA)
    3. Check validity period
    4. Check the expected domain is the first SAN entry

    Args:
        cert_path: Path to the leaf certificate
        ca_cert_path: Path to CA certificate file
        expected_domain: Optional domain the SAN list must start with

    Returns:
        The verified certificate

    Raises:
        PKIValidationError if any check fails
    """
    cert = load_certificate(cert_path)
    ca_cert = load_certificate(ca_cert_path)

    verify_certificate_chain(cert, ca_cert)
    check_certificate_validity(cert)

    if expected_domain is not None:
        dns_names = get_dns_names(cert)
        if not dns_names:
            raise PKIValidationError("Certificate has no DNS Subject Alternative Names")
        if dns_names[0] != expected_domain:
            raise PKIValidationError(
                f"Certificate SAN mismatch: expected '{expected_domain}', got '{dns_names[0]}'"
            )

    return cert
