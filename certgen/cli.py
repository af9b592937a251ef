"""certgen: root CA bootstrap + leaf certificate issuance for homelab TLS."""

import argparse
import sys
from typing import List, Optional

from pydantic import ValidationError

from certgen.common.config import Settings, load_settings
from certgen.common.layout import InvalidDomainError, ca_layout, validate_domain
from certgen.crypto.ca import CertificateAuthorityError, ensure_root_ca
from certgen.crypto.issuer import issue_certificate
from certgen.crypto.pki import PKIValidationError, get_certificate_fingerprint, verify_issued_certificate
from certgen.crypto.serial import SerialFileError


PROG = "certgen"
TITLE = "CertGen - TLS Certificate Generator"
WILDCARD_WORD = "wildcard"

BANNER = f"""\
 ██████╗███████╗██████╗ ████████╗ ██████╗ ███████╗███╗   ██╗
██╔════╝██╔════╝██╔══██╗╚══██╔══╝██╔════╝ ██╔════╝████╗  ██║
██║     █████╗  ██████╔╝   ██║   ██║  ███╗█████╗  ██╔██╗ ██║
██║     ██╔══╝  ██╔══██╗   ██║   ██║   ██║██╔══╝  ██║╚██╗██║
╚██████╗███████╗██║  ██║   ██║   ╚██████╔╝███████╗██║ ╚████║
 ╚═════╝╚══════╝╚═╝  ╚═╝   ╚═╝    ╚═════╝ ╚══════╝╚═╝  ╚═══╝

            {TITLE}"""

DESCRIPTION = f"""\
{BANNER}

Generate a Root CA and SSL certificate for Nginx Proxy Manager.
Files are created relative to the current directory."""

EPILOG = f"""\
Examples:
  {PROG} mydomain.local
  {PROG} example.com wildcard
  {PROG} --force-new-ca internal.lan

Folders:
  ./ca/                     Root CA
  ./certs/<domain>/         Domain certs + config
  ./ca_backup_<timestamp>/  (if --force-new-ca used)"""


class CertGenArgumentParser(argparse.ArgumentParser):
    """Argument parser that prints full usage and exits 1 on bad invocation."""

    def error(self, message):
        sys.stderr.write(f"{self.prog}: error: {message}\n\n")
        self.print_help(sys.stderr)
        self.exit(1)


def wildcard_flag(value: str) -> bool:
    # An empty second argument means no wildcard
    if value == "":
        return False
    if value.lower() != WILDCARD_WORD:
        raise argparse.ArgumentTypeError(
            f"second argument must be '{WILDCARD_WORD}', got {value!r}"
        )
    return True


def domain_name(value: str) -> str:
    try:
        return validate_domain(value)
    except InvalidDomainError as e:
        raise argparse.ArgumentTypeError(str(e))


def build_parser() -> argparse.ArgumentParser:
    parser = CertGenArgumentParser(
        prog=PROG,
        description=DESCRIPTION,
        epilog=EPILOG,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "--force-new-ca",
        action="store_true",
        help="Backup old ./ca/ and create a new Root CA.",
    )
    parser.add_argument("domain", type=domain_name, help="Domain name for certificate generation.")
    parser.add_argument(
        "wildcard",
        nargs="?",
        type=wildcard_flag,
        default=False,
        help=f"Literal '{WILDCARD_WORD}': add wildcard SAN entry (*.domain).",
    )
    return parser


def run(settings: Settings, domain: str, wildcard: bool, force_new_ca: bool):
    """Bootstrap the CA, issue the certificate and print a summary."""
    authority = ca_layout(settings.base_dir)
    print(f"=== Working Directory: {settings.base_dir}")
    print(f"=== CA Directory: {authority.ca_dir}")
    print()
    print(BANNER)
    print()

    if force_new_ca:
        print(">>> --force-new-ca active: backing up existing CA")
    bootstrap = ensure_root_ca(settings, force_new=force_new_ca)
    if bootstrap.backup_dir is not None:
        print(f"✓ Previous CA moved to {bootstrap.backup_dir}")
    if bootstrap.created:
        print("✓ New Root CA created")
    else:
        print("✓ Existing Root CA found, reusing (use --force-new-ca to recreate)")

    print(f">>> Generating certificate for: {domain}")
    if wildcard:
        print(f">>> Wildcard enabled (*.{domain})")
    result = issue_certificate(settings, domain, wildcard=wildcard)
    cert = verify_issued_certificate(result.layout.cert_path, authority.cert_path, expected_domain=domain)

    print("✓ Certificate created")
    print(f"    Key:  {result.layout.key_path}")
    print(f"    Cert: {result.layout.cert_path}")
    print(f"    SAN:  {', '.join(result.alt_names)}")
    print(f"    Serial: {result.serial_number:X}")
    print(f"    SHA-256: {get_certificate_fingerprint(cert)}")

    print()
    print("=" * 40)
    print("✓ All tasks completed successfully!")
    print()
    print("Root CA:")
    print(f"  {authority.cert_path}")
    print(f"  {authority.key_path}")
    print()
    print("Domain Certificate:")
    print(f"  {result.layout.cert_path}")
    print(f"  {result.layout.key_path}")
    print()
    print("To use in Nginx Proxy Manager:")
    print("  SSL Certificates → Add → Custom")
    print(f"  Certificate:  {result.layout.cert_path}")
    print(f"  Private Key:  {result.layout.key_path}")
    print()
    print("To trust on devices, import Root CA:")
    print(f"  {authority.cert_path}")
    print("=" * 40)


def main(argv: Optional[List[str]] = None, settings: Optional[Settings] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        if settings is None:
            settings = load_settings()
        run(settings, args.domain, args.wildcard, args.force_new_ca)
    except ValidationError as e:
        print(f"✗ Invalid configuration: {e}", file=sys.stderr)
        return 1
    except (CertificateAuthorityError, SerialFileError, InvalidDomainError, PKIValidationError) as e:
        print(f"✗ {e}", file=sys.stderr)
        return 1
    except (OSError, ValueError) as e:
        print(f"✗ {type(e).__name__}: {e}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
