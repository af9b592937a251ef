import os
import unittest
from datetime import datetime, timedelta

from cryptography import x509
from cryptography.x509.oid import NameOID

from certgen.common.layout import ca_layout
from certgen.crypto.ca import (
    CertificateAuthorityError,
    backup_existing_ca,
    ca_initialized,
    ensure_root_ca,
    load_ca_key_and_cert,
)
from certgen.crypto.pki import verify_certificate_chain
from helpers import TempDirMixin, make_settings


class EnsureRootCATests(TempDirMixin, unittest.TestCase):
    def test_fresh_directory_creates_ca(self):
        result = ensure_root_ca(self.settings)
        self.assertTrue(result.created)
        self.assertIsNone(result.backup_dir)
        self.assertTrue((self.base_dir / "ca" / "rootCA.key").is_file())
        self.assertTrue((self.base_dir / "ca" / "rootCA.pem").is_file())
        self.assertTrue(ca_initialized(result.layout))

    def test_second_run_reuses_files(self):
        layout = ensure_root_ca(self.settings).layout
        key_mtime = os.stat(layout.key_path).st_mtime_ns
        cert_mtime = os.stat(layout.cert_path).st_mtime_ns
        cert_bytes = layout.cert_path.read_bytes()

        result = ensure_root_ca(self.settings)

        self.assertFalse(result.created)
        self.assertEqual(os.stat(layout.key_path).st_mtime_ns, key_mtime)
        self.assertEqual(os.stat(layout.cert_path).st_mtime_ns, cert_mtime)
        self.assertEqual(layout.cert_path.read_bytes(), cert_bytes)

    def test_missing_certificate_recreates_pair(self):
        layout = ensure_root_ca(self.settings).layout
        old_key = layout.key_path.read_bytes()
        layout.cert_path.unlink()

        result = ensure_root_ca(self.settings)

        self.assertTrue(result.created)
        self.assertNotEqual(layout.key_path.read_bytes(), old_key)
        ca_key, ca_cert = load_ca_key_and_cert(layout)
        self.assertEqual(ca_cert.public_key().public_numbers(), ca_key.public_key().public_numbers())

    def test_force_new_backs_up_and_replaces(self):
        layout = ensure_root_ca(self.settings).layout
        old_cert = layout.cert_path.read_bytes()

        result = ensure_root_ca(self.settings, force_new=True)

        self.assertTrue(result.created)
        self.assertIsNotNone(result.backup_dir)
        self.assertTrue(result.backup_dir.name.startswith("ca_backup_"))
        self.assertEqual((result.backup_dir / "rootCA.pem").read_bytes(), old_cert)
        self.assertTrue((result.backup_dir / "rootCA.key").is_file())
        self.assertNotEqual(layout.cert_path.read_bytes(), old_cert)

    def test_force_new_without_existing_ca(self):
        result = ensure_root_ca(self.settings, force_new=True)
        self.assertTrue(result.created)
        self.assertIsNone(result.backup_dir)

    def test_certificate_fields(self):
        layout = ensure_root_ca(self.settings).layout
        ca_key, cert = load_ca_key_and_cert(layout)

        subject = self.settings.subject
        self.assertEqual(cert.subject, cert.issuer)
        self.assertEqual(cert.subject.get_attributes_for_oid(NameOID.COUNTRY_NAME)[0].value, subject.country)
        self.assertEqual(cert.subject.get_attributes_for_oid(NameOID.ORGANIZATIONAL_UNIT_NAME)[0].value,
                         subject.organizational_unit)
        self.assertEqual(cert.subject.get_attributes_for_oid(NameOID.COMMON_NAME)[0].value, "HomeLab Root CA")

        constraints = cert.extensions.get_extension_for_class(x509.BasicConstraints)
        self.assertTrue(constraints.critical)
        self.assertTrue(constraints.value.ca)

        usage = cert.extensions.get_extension_for_class(x509.KeyUsage)
        self.assertTrue(usage.critical)
        self.assertTrue(usage.value.key_cert_sign)
        self.assertTrue(usage.value.crl_sign)

        lifetime = cert.not_valid_after_utc - cert.not_valid_before_utc
        self.assertEqual(lifetime, timedelta(days=3650))
        self.assertEqual(cert.signature_hash_algorithm.name, "sha256")
        self.assertTrue(verify_certificate_chain(cert, cert))

    @unittest.skipIf(os.name == "nt", "POSIX permissions")
    def test_key_is_owner_only(self):
        layout = ensure_root_ca(self.settings).layout
        self.assertEqual(os.stat(layout.key_path).st_mode & 0o777, 0o600)
        self.assertEqual(os.stat(layout.cert_path).st_mode & 0o777, 0o644)

    def test_full_size_ca_key(self):
        settings = make_settings(self.base_dir, ca_key_size=4096)
        layout = ensure_root_ca(settings).layout
        ca_key, _ = load_ca_key_and_cert(layout)
        self.assertEqual(ca_key.key_size, 4096)


class BackupTests(TempDirMixin, unittest.TestCase):
    def test_nothing_to_back_up(self):
        self.assertIsNone(backup_existing_ca(self.base_dir))

    def test_backup_uses_timestamp(self):
        ensure_root_ca(self.settings)
        backup = backup_existing_ca(self.base_dir, datetime(2025, 1, 2, 3, 4, 5))
        self.assertEqual(backup, self.base_dir / "ca_backup_20250102_030405")
        self.assertFalse((self.base_dir / "ca").exists())
        self.assertTrue((backup / "rootCA.pem").is_file())

    def test_existing_backup_target_fails_loudly(self):
        ensure_root_ca(self.settings)
        when = datetime(2025, 1, 2, 3, 4, 5)
        (self.base_dir / "ca_backup_20250102_030405").mkdir()
        with self.assertRaises(CertificateAuthorityError):
            backup_existing_ca(self.base_dir, when)
        self.assertTrue(ca_initialized(ca_layout(self.base_dir)))

    def test_load_without_ca_raises(self):
        with self.assertRaises(CertificateAuthorityError):
            load_ca_key_and_cert(ca_layout(self.base_dir))


if __name__ == "__main__":
    unittest.main()
