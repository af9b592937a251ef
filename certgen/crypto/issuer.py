"""Issue leaf certificates (SAN = domain [+ *.domain]) signed by the root CA."""

from datetime import datetime, timedelta, timezone
from typing import List

from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from cryptography.x509.oid import NameOID
from pydantic import BaseModel, ConfigDict

from certgen.common.config import CERT_KEY_SIZE, Settings, Subject
from certgen.common.layout import DomainLayout, ca_layout, domain_layout
from certgen.crypto.ca import load_ca_key_and_cert
from certgen.crypto.keys import PUBLIC_FILE_MODE, generate_rsa_key, write_pem, write_private_key
from certgen.crypto.serial import next_serial


SIGNING_CONFIG_TEMPLATE = """\
[req]
default_bits       = {default_bits}
prompt             = no
default_md         = sha256
distinguished_name = dn
req_extensions     = req_ext

[dn]
C  = {country}
ST = {state}
L  = {locality}
O  = {organization}
OU = {organizational_unit}
CN = {domain}

[req_ext]
subjectAltName = @alt_names

[alt_names]
{alt_names}
"""


class IssueResult(BaseModel):
    """Outcome of issue_certificate."""
    model_config = ConfigDict(arbitrary_types_allowed=True)

    layout: DomainLayout
    serial_number: int
    alt_names: List[str]
    certificate: x509.Certificate


def build_alt_names(domain: str, wildcard: bool = False) -> List[str]:
    """DNS names for the SAN extension: the domain, then *.domain if asked."""
    names = [domain]
    if wildcard:
        names.append(f"*.{domain}")
    return names


def render_signing_config(subject: Subject, domain: str, alt_names: List[str],
                          default_bits: int = CERT_KEY_SIZE) -> str:
    """Render the openssl.conf kept next to each certificate.

    The file can be fed to `openssl req -config` / `openssl x509 -extfile`
    to reproduce the CSR and signing by hand.
    """
    alt_lines = "\n".join(f"DNS.{i} = {name}" for i, name in enumerate(alt_names, start=1))
    return SIGNING_CONFIG_TEMPLATE.format(
        default_bits=default_bits,
        country=subject.country,
        state=subject.state,
        locality=subject.locality,
        organization=subject.organization,
        organizational_unit=subject.organizational_unit,
        domain=domain,
        alt_names=alt_lines,
    )


def leaf_name(subject: Subject, domain: str) -> x509.Name:
    return x509.Name([
        x509.NameAttribute(NameOID.COUNTRY_NAME, subject.country),
        x509.NameAttribute(NameOID.STATE_OR_PROVINCE_NAME, subject.state),
        x509.NameAttribute(NameOID.LOCALITY_NAME, subject.locality),
        x509.NameAttribute(NameOID.ORGANIZATION_NAME, subject.organization),
        x509.NameAttribute(NameOID.ORGANIZATIONAL_UNIT_NAME, subject.organizational_unit),
        x509.NameAttribute(NameOID.COMMON_NAME, domain),
    ])


def build_csr(
    key: rsa.RSAPrivateKey,
    subject: Subject,
    domain: str,
    alt_names: List[str],
) -> x509.CertificateSigningRequest:
    """Build a CSR carrying the leaf subject and the SAN list.

    Args:
        key: Leaf private key
        subject: Distinguished name fields (CN is replaced by the domain)
        domain: Domain the certificate is for
        alt_names: DNS names for the SAN extension

    Returns:
        Signed certificate signing request
    """
    return x509.CertificateSigningRequestBuilder().subject_name(
        leaf_name(subject, domain)
    ).add_extension(
        x509.SubjectAlternativeName([x509.DNSName(name) for name in alt_names]),
        critical=False,
    ).sign(key, hashes.SHA256())


def sign_csr(
    csr: x509.CertificateSigningRequest,
    ca_key: rsa.RSAPrivateKey,
    ca_cert: x509.Certificate,
    serial_number: int,
    days: int,
) -> x509.Certificate:
    """Sign a CSR with the CA key.

    The CSR's subject, public key and SAN extension are copied into the
    certificate; key identifiers link it to the CA.

    Args:
        csr: Certificate signing request
        ca_key: CA private key
        ca_cert: CA certificate (issuer)
        serial_number: Serial from the CA serial file
        days: Validity period in days

    Returns:
        Signed leaf certificate
    """
    san = csr.extensions.get_extension_for_class(x509.SubjectAlternativeName)
    public_key = csr.public_key()
    now = datetime.now(timezone.utc)

    return x509.CertificateBuilder().subject_name(
        csr.subject
    ).issuer_name(
        ca_cert.subject
    ).public_key(
        public_key
    ).serial_number(
        serial_number
    ).not_valid_before(
        now
    ).not_valid_after(
        now + timedelta(days=days)
    ).add_extension(
        san.value,
        critical=san.critical,
    ).add_extension(
        x509.SubjectKeyIdentifier.from_public_key(public_key),
        critical=False,
    ).add_extension(
        x509.AuthorityKeyIdentifier.from_issuer_public_key(ca_key.public_key()),
        critical=False,
    ).sign(ca_key, hashes.SHA256())


def issue_certificate(settings: Settings, domain: str, wildcard: bool = False) -> IssueResult:
    """Issue a certificate for a domain, signed by the root CA.

    A new key is generated on every call; key, CSR, certificate and
    openssl.conf of an earlier run for the same domain are overwritten.

    Args:
        settings: Run settings
        domain: Domain name (also the CN and the first SAN entry)
        wildcard: Add *.domain to the SAN list

    Returns:
        IssueResult with the file layout, serial and certificate

    Raises:
        InvalidDomainError if the domain is not usable
        CertificateAuthorityError if the root CA does not exist
    """
    layout = domain_layout(settings.base_dir, domain)
    authority = ca_layout(settings.base_dir)
    ca_key, ca_cert = load_ca_key_and_cert(authority)

    layout.domain_dir.mkdir(parents=True, exist_ok=True)

    alt_names = build_alt_names(domain, wildcard)
    layout.config_path.write_text(
        render_signing_config(settings.subject, domain, alt_names, settings.cert_key_size)
    )

    key = generate_rsa_key(settings.cert_key_size)
    write_private_key(layout.key_path, key)

    csr = build_csr(key, settings.subject, domain, alt_names)
    write_pem(layout.csr_path, csr.public_bytes(serialization.Encoding.PEM), mode=PUBLIC_FILE_MODE)

    serial_number = next_serial(authority.serial_path)
    cert = sign_csr(csr, ca_key, ca_cert, serial_number, settings.cert_days)
    write_pem(layout.cert_path, cert.public_bytes(serialization.Encoding.PEM), mode=PUBLIC_FILE_MODE)

    return IssueResult(
        layout=layout,
        serial_number=serial_number,
        alt_names=alt_names,
        certificate=cert,
    )
