#!/usr/bin/env python3
"""Verify that the CA and a domain certificate are in place and valid."""

import argparse
import sys
from pathlib import Path
from typing import List, Optional

from pydantic import ValidationError

from certgen.common.config import Settings, load_settings
from certgen.common.layout import InvalidDomainError, ca_layout, domain_layout
from certgen.crypto.pki import (
    PKIValidationError,
    get_certificate_fingerprint,
    get_dns_names,
    verify_issued_certificate,
)


def check_file(path: Path, description: str) -> bool:
    """Check if a file exists."""
    if Path(path).is_file():
        print(f"✓ {description}: {path}")
        return True
    else:
        print(f"✗ {description} missing: {path}")
        return False


def check_domain(settings: Settings, domain: str) -> List[str]:
    """Run every check for one domain and return the failures."""
    errors = []
    authority = ca_layout(settings.base_dir)
    layout = domain_layout(settings.base_dir, domain)

    sections = [
        ("Checking Root CA...", [
            (authority.key_path, "CA private key"),
            (authority.cert_path, "CA certificate"),
        ]),
        (f"\nChecking files for {domain}...", [
            (layout.key_path, "Private key"),
            (layout.csr_path, "Signing request"),
            (layout.config_path, "Signing config"),
            (layout.cert_path, "Certificate"),
        ]),
    ]
    for heading, files_to_check in sections:
        print(heading)
        for path, description in files_to_check:
            if not check_file(path, description):
                errors.append(f"{description} ({path})")

    if errors:
        return errors

    print()
    print("Verifying certificate against Root CA...")
    try:
        cert = verify_issued_certificate(layout.cert_path, authority.cert_path, expected_domain=domain)
    except PKIValidationError as e:
        print(f"✗ {e}")
        errors.append(str(e))
        return errors

    print("✓ Signed by Root CA")
    print(f"  SAN: {', '.join(get_dns_names(cert))}")
    print(f"  Valid until: {cert.not_valid_after_utc}")
    print(f"  SHA-256: {get_certificate_fingerprint(cert)}")
    return errors


def main(argv: Optional[List[str]] = None, settings: Optional[Settings] = None) -> int:
    """Verify setup."""
    parser = argparse.ArgumentParser(
        prog="certgen-check",
        description="Check the Root CA and a domain certificate issued by certgen.",
    )
    parser.add_argument("domain", help="Domain whose certificate should be checked")
    args = parser.parse_args(argv)

    print("CertGen Certificate Check\n")
    print("=" * 50)

    try:
        if settings is None:
            settings = load_settings()
        errors = check_domain(settings, args.domain)
    except (ValidationError, InvalidDomainError) as e:
        print(f"✗ {e}", file=sys.stderr)
        return 1

    print("\n" + "=" * 50)
    if errors:
        print(f"\n⚠ Found {len(errors)} issue(s):")
        for error in errors:
            print(f"  - {error}")
        print(f"\nRe-issue with: certgen {args.domain}")
        return 1

    print("\n✓ Certificate check complete! Everything looks good.")
    return 0


if __name__ == "__main__":
    sys.exit(main())
