"""
Security service wiring configured trust and identity sources into SSL contexts.
"""
import logging
import ssl
from datetime import datetime, timezone
from typing import List, Optional, Tuple

from cryptography import x509
from cryptography.hazmat.primitives import hashes

from .errors import InvalidArgumentError
from .keystore_loader import KeystoreLoader
from .models import CertificateInfo, IdentityStore, TrustStore
from .pem_importer import CertificateImporter
from .tls_context import SSLContextAssembler
from .trust_store import TrustStoreBuilder


class SecurityService:
    """Service for building SSL contexts from configured certificate sources."""

    def __init__(self, config):
        """Initialize the security service with configuration."""
        self.config = config
        self.logger = logging.getLogger(__name__)
        self.certificate_importer = CertificateImporter()
        self.trust_store_builder = TrustStoreBuilder(self.certificate_importer)
        self.keystore_loader = KeystoreLoader()
        self.assembler = SSLContextAssembler(
            purpose=config.context_purpose,
            minimum_version=config.minimum_tls_version,
            client_cert_required=config.client_cert_required,
            key_manager_algorithm=config.key_manager_algorithm,
        )

    def load_trust_store(self) -> Optional[TrustStore]:
        """Build the trust store from the configured CA certificates file, if any."""
        ca_certs_path = self.config.ca_certs_path
        if ca_certs_path is None:
            return None

        if not ca_certs_path.strip():
            raise InvalidArgumentError("The specified value for CAcerts may not be blank")

        certificates = self.certificate_importer.import_certificates(ca_certs_path)
        trust_store = self.trust_store_builder.build(certificates)
        self.logger.info(f"Loaded {len(trust_store)} trusted certificate(s) from {ca_certs_path}")
        return trust_store

    def load_identity_store(self) -> Optional[IdentityStore]:
        """Load the configured identity keystore, if any."""
        if self.config.keystore_path is None:
            return None

        identity_store = self.keystore_loader.load(
            self.config.keystore_path,
            self.config.keystore_password,
            self.config.keystore_type,
        )
        self.logger.info(
            f"Loaded {identity_store.store_format} keystore {self.config.keystore_path} "
            f"with {len(identity_store)} entries"
        )
        return identity_store

    def create_ssl_context(self) -> ssl.SSLContext:
        """Create an SSL context from the configured trust and identity sources."""
        context, _ = self.create_ssl_context_with_trust()
        return context

    def create_ssl_context_with_trust(self) -> Tuple[ssl.SSLContext, Optional[TrustStore]]:
        """Create an SSL context and also return the trust store it was built from."""
        trust_store = self.load_trust_store()
        identity_store = self.load_identity_store()

        context = self.assembler.assemble(
            trust_store=trust_store,
            identity_store=identity_store,
            identity_password=self.config.key_password or self.config.keystore_password,
        )
        self.logger.info("SSL context configured")
        return context, trust_store

    def describe_trust_store(self, trust_store: TrustStore) -> List[Tuple[str, CertificateInfo]]:
        """List certificate details for every entry of a trust store."""
        return [(alias, self.get_certificate_info(cert)) for alias, cert in trust_store.items()]

    def get_certificate_info(self, cert: x509.Certificate) -> CertificateInfo:
        """Extract information from a certificate."""
        now = datetime.now(timezone.utc)

        not_before = cert.not_valid_before_utc
        not_after = cert.not_valid_after_utc

        return CertificateInfo(
            subject=cert.subject.rfc4514_string(),
            issuer=cert.issuer.rfc4514_string(),
            serial_number=str(cert.serial_number),
            not_before=not_before,
            not_after=not_after,
            is_valid=not_before <= now <= not_after,
            fingerprint=cert.fingerprint(hashes.SHA256()).hex(),
        )
