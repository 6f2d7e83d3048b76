"""
Importer for X.509 certificates stored in PEM format.
"""
import base64
import binascii
import logging
import os
from typing import IO, Iterable, List, Union

from cryptography import x509

from .errors import InvalidArgumentError, MalformedInputError, NotFoundError

BEGIN_MARKER = "BEGIN CERTIFICATE"
END_MARKER = "END CERTIFICATE"
DELIMITER_PREFIX = "----"

CertificateSource = Union[str, os.PathLike, IO]


class CertificateImporter:
    """Reads one or more X.509 certificates from PEM encoded sources."""

    def __init__(self):
        self.logger = logging.getLogger(__name__)

    def import_certificates(self, source: CertificateSource) -> List[x509.Certificate]:
        """
        Read all certificates from a PEM file or an open stream.

        Args:
            source: Path to a PEM file, or a readable text/binary stream.
                Streams are read but not closed.

        Returns:
            Certificates in the order they appear in the source

        Raises:
            NotFoundError: If the path does not exist or is not a file
            MalformedInputError: If no certificate block is found, a block is
                not terminated, or a block does not decode to a certificate
        """
        if source is None:
            raise InvalidArgumentError("source may not be None")

        if hasattr(source, 'read'):
            return self._parse_lines(source, "<stream>")

        path = os.fspath(source)
        if not os.path.isfile(path):
            raise NotFoundError(f"File not found: {path}")

        with open(path, 'rb') as f:
            certificates = self._parse_lines(f, path)

        self.logger.debug(f"Imported {len(certificates)} certificate(s) from {path}")
        return certificates

    def _parse_lines(self, lines: Iterable, name: str) -> List[x509.Certificate]:
        """Scan lines for certificate blocks and decode each one."""
        certificates = []
        buffer = []
        in_block = False
        found_begin = False

        for raw_line in lines:
            line = self._to_text(raw_line, name).strip()

            if not in_block:
                if BEGIN_MARKER in line:
                    in_block = True
                    found_begin = True
                    buffer = []
                continue

            if END_MARKER in line:
                certificates.append(self._decode_certificate("".join(buffer), name, len(certificates) + 1))
                buffer = []
                in_block = False
            elif BEGIN_MARKER in line:
                raise MalformedInputError(
                    f"Certificate block {len(certificates) + 1} in {name} is not terminated before the next one starts"
                )
            elif not line.startswith(DELIMITER_PREFIX):
                buffer.append(line)

        if not found_begin:
            raise MalformedInputError(f"{name} does not contain a valid certificate in PEM format")

        if in_block:
            raise MalformedInputError(
                f"Certificate block {len(certificates) + 1} in {name} has no matching END CERTIFICATE line"
            )

        return certificates

    def _to_text(self, raw_line, name: str) -> str:
        if isinstance(raw_line, bytes):
            try:
                return raw_line.decode('ascii')
            except UnicodeDecodeError as e:
                raise MalformedInputError(f"{name} contains non-ASCII data") from e
        return raw_line

    def _decode_certificate(self, payload: str, name: str, index: int) -> x509.Certificate:
        """Decode the base64 payload of one block into a certificate."""
        try:
            der = base64.b64decode(payload, validate=True)
        except (binascii.Error, ValueError) as e:
            raise MalformedInputError(f"Certificate block {index} in {name} is not valid base64: {e}") from e

        try:
            return x509.load_der_x509_certificate(der)
        except ValueError as e:
            raise MalformedInputError(f"Certificate block {index} in {name} is not a valid X.509 certificate: {e}") from e
