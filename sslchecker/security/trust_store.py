"""
Builder for in-memory trust stores.
"""
import logging
import os
from typing import Iterable

from cryptography import x509

from .errors import InvalidArgumentError
from .models import TrustStore
from .pem_importer import CertificateImporter


class TrustStoreBuilder:
    """Creates trust stores from parsed certificates."""

    def __init__(self, certificate_importer: CertificateImporter = None):
        self.certificate_importer = certificate_importer or CertificateImporter()
        self.logger = logging.getLogger(__name__)

    def build(self, certificates: Iterable[x509.Certificate]) -> TrustStore:
        """
        Create a trust store holding the given certificates.

        Labels "1", "2", ... are assigned in input order. An empty input yields
        an empty store.
        """
        if certificates is None:
            raise InvalidArgumentError("certificates may not be None")

        trust_store = TrustStore()
        for index, certificate in enumerate(certificates, start=1):
            trust_store.set_certificate_entry(str(index), certificate)

        self.logger.debug(f"Created trust store with {len(trust_store)} entries")
        return trust_store

    def build_from_file(self, certificates_file: os.PathLike) -> TrustStore:
        """Create a trust store from a file with certificates in PEM format."""
        return self.build(self.certificate_importer.import_certificates(certificates_file))
