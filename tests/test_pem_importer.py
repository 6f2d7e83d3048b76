"""
Tests for importing certificates from PEM sources.
"""
import base64
import io
import os
import shutil
import tempfile
import textwrap
import unittest

from cryptography import x509
from cryptography.hazmat.primitives import serialization

from sslchecker.security.errors import InvalidArgumentError, MalformedInputError, NotFoundError
from sslchecker.security.pem_importer import CertificateImporter

from certificate_helpers import create_test_ca, create_test_cert, to_pem, write_pem_bundle


class TestCertificateImporter(unittest.TestCase):
    """Test cases for CertificateImporter."""

    @classmethod
    def setUpClass(cls):
        cls.ca_cert, cls.ca_key = create_test_ca("Importer CA")
        cls.certs = [cls.ca_cert] + [
            create_test_cert(cls.ca_cert, cls.ca_key, f"host{i}")[0] for i in range(3)
        ]

    def setUp(self):
        self.temp_dir = tempfile.mkdtemp()
        self.importer = CertificateImporter()

    def tearDown(self):
        shutil.rmtree(self.temp_dir)

    def _path(self, name):
        return os.path.join(self.temp_dir, name)

    def _write(self, name, content):
        path = self._path(name)
        with open(path, 'w') as f:
            f.write(content)
        return path

    def test_import_single_certificate(self):
        path = self._path("single.pem")
        write_pem_bundle(path, [self.ca_cert])

        certificates = self.importer.import_certificates(path)

        self.assertEqual(len(certificates), 1)
        self.assertIsInstance(certificates[0], x509.Certificate)
        self.assertEqual(certificates[0], self.ca_cert)

    def test_import_multiple_certificates_preserves_order(self):
        path = self._path("bundle.pem")
        write_pem_bundle(path, self.certs)

        certificates = self.importer.import_certificates(path)

        self.assertEqual(certificates, self.certs)

    def test_leading_text_and_text_between_blocks_is_ignored(self):
        path = self._path("annotated.pem")
        write_pem_bundle(
            path,
            self.certs[:2],
            prefix="# CA bundle\nSubject: CN=Importer CA\n\n",
            separator="\nSubject: CN=host0\nIssuer: CN=Importer CA\n",
        )

        certificates = self.importer.import_certificates(path)

        self.assertEqual(certificates, self.certs[:2])

    def test_payload_wrapped_at_other_widths(self):
        der = self.ca_cert.public_bytes(serialization.Encoding.DER)
        payload = base64.b64encode(der).decode('ascii')
        content = "-----BEGIN CERTIFICATE-----\n" + "\n".join(textwrap.wrap(payload, 76)) + "\n-----END CERTIFICATE-----\n"
        path = self._write("wide.pem", content)

        self.assertEqual(self.importer.import_certificates(path), [self.ca_cert])

    def test_crlf_line_endings(self):
        path = self._write("crlf.pem", to_pem(self.ca_cert).replace("\n", "\r\n"))

        self.assertEqual(self.importer.import_certificates(path), [self.ca_cert])

    def test_import_from_text_stream(self):
        stream = io.StringIO(to_pem(self.certs[1]) + to_pem(self.certs[2]))

        certificates = self.importer.import_certificates(stream)

        self.assertEqual(certificates, self.certs[1:3])
        self.assertFalse(stream.closed)

    def test_import_from_binary_stream(self):
        stream = io.BytesIO(to_pem(self.ca_cert).encode('ascii'))

        self.assertEqual(self.importer.import_certificates(stream), [self.ca_cert])

    def test_missing_file_raises_not_found(self):
        with self.assertRaises(NotFoundError):
            self.importer.import_certificates(self._path("missing.pem"))

    def test_not_found_is_file_not_found_error(self):
        with self.assertRaises(FileNotFoundError):
            self.importer.import_certificates(self._path("missing.pem"))

    def test_directory_raises_not_found(self):
        with self.assertRaises(NotFoundError):
            self.importer.import_certificates(self.temp_dir)

    def test_none_source_raises_invalid_argument(self):
        with self.assertRaises(InvalidArgumentError):
            self.importer.import_certificates(None)

    def test_no_begin_marker_raises_malformed_input(self):
        path = self._write("plain.txt", "just some text\nwithout any certificate\n")

        with self.assertRaises(MalformedInputError):
            self.importer.import_certificates(path)

    def test_empty_file_raises_malformed_input(self):
        path = self._write("empty.pem", "")

        with self.assertRaises(MalformedInputError):
            self.importer.import_certificates(path)

    def test_begin_without_end_raises_malformed_input(self):
        pem = to_pem(self.ca_cert)
        truncated = pem[:pem.index("-----END CERTIFICATE-----")]
        path = self._write("truncated.pem", truncated)

        with self.assertRaises(MalformedInputError):
            self.importer.import_certificates(path)

    def test_second_block_without_end_fails_whole_import(self):
        second = to_pem(self.certs[1])
        content = to_pem(self.ca_cert) + second[:second.index("-----END CERTIFICATE-----")]
        path = self._write("half.pem", content)

        with self.assertRaises(MalformedInputError):
            self.importer.import_certificates(path)

    def test_invalid_base64_raises_malformed_input(self):
        path = self._write(
            "badbase64.pem",
            "-----BEGIN CERTIFICATE-----\nthis is *not* base64!\n-----END CERTIFICATE-----\n",
        )

        with self.assertRaises(MalformedInputError):
            self.importer.import_certificates(path)

    def test_invalid_der_raises_malformed_input(self):
        payload = base64.b64encode(b"definitely not a certificate").decode('ascii')
        path = self._write(
            "baddder.pem",
            f"-----BEGIN CERTIFICATE-----\n{payload}\n-----END CERTIFICATE-----\n",
        )

        with self.assertRaises(MalformedInputError):
            self.importer.import_certificates(path)

    def test_good_block_followed_by_bad_block_returns_nothing(self):
        content = to_pem(self.ca_cert) + "-----BEGIN CERTIFICATE-----\nAAAA\n-----END CERTIFICATE-----\n"
        path = self._write("mixed.pem", content)

        with self.assertRaises(MalformedInputError):
            self.importer.import_certificates(path)

    def test_empty_block_raises_malformed_input(self):
        path = self._write("emptyblock.pem", "-----BEGIN CERTIFICATE-----\n-----END CERTIFICATE-----\n")

        with self.assertRaises(MalformedInputError):
            self.importer.import_certificates(path)

    def test_non_ascii_content_raises_malformed_input(self):
        path = self._path("binary.pem")
        with open(path, 'wb') as f:
            f.write(b"-----BEGIN CERTIFICATE-----\n\xff\xfe\n-----END CERTIFICATE-----\n")

        with self.assertRaises(MalformedInputError):
            self.importer.import_certificates(path)


if __name__ == '__main__':
    unittest.main()
