"""
Assembly of ready-to-use SSL contexts from trust and identity material.
"""
import logging
import os
import ssl
import tempfile
from typing import Optional, Tuple

from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.hazmat.primitives import serialization

from .errors import InitializationError, InvalidArgumentError, SSLCheckerError
from .models import IdentityStore, TrustStore

PURPOSE_CLIENT = "client"
PURPOSE_SERVER = "server"

PREFERRED_KEY_MANAGER_ALGORITHM = "PKCS8"
DEFAULT_KEY_MANAGER_ALGORITHM = "TraditionalOpenSSL"

# Formats the recovered private key can be handed to the ssl module in
KEY_MANAGER_ALGORITHMS = {
    "PKCS8": serialization.PrivateFormat.PKCS8,
    "TraditionalOpenSSL": serialization.PrivateFormat.TraditionalOpenSSL,
}

TLS_VERSIONS = {
    "TLSv1_2": ssl.TLSVersion.TLSv1_2,
    "TLSv1_3": ssl.TLSVersion.TLSv1_3,
}


class SSLContextAssembler:
    """Creates SSL contexts wired with trust and identity managers."""

    def __init__(self,
                 purpose: str = PURPOSE_CLIENT,
                 minimum_version: str = "TLSv1_2",
                 client_cert_required: bool = True,
                 key_manager_algorithm: str = PREFERRED_KEY_MANAGER_ALGORITHM):
        """
        Initialize the assembler.

        Args:
            purpose: "client" for outbound connections, "server" for listening sockets
            minimum_version: Lowest TLS version accepted (TLSv1_2 or TLSv1_3)
            client_cert_required: For server contexts with explicit trust, require
                client certificates instead of only requesting them
            key_manager_algorithm: Preferred format for handing keys to the ssl module
        """
        if purpose not in (PURPOSE_CLIENT, PURPOSE_SERVER):
            raise InvalidArgumentError(f"purpose must be one of: {PURPOSE_CLIENT}, {PURPOSE_SERVER}")
        if minimum_version not in TLS_VERSIONS:
            raise InvalidArgumentError(f"minimum_version must be one of: {', '.join(TLS_VERSIONS)}")

        self.purpose = purpose
        self.minimum_version = minimum_version
        self.client_cert_required = client_cert_required
        self.key_manager_algorithm = key_manager_algorithm
        self.logger = logging.getLogger(__name__)

    def assemble(self,
                 trust_store: Optional[TrustStore] = None,
                 identity_store: Optional[IdentityStore] = None,
                 identity_password: Optional[str] = None) -> ssl.SSLContext:
        """
        Create an initialized SSL context.

        Without a trust store the platform's default trust anchors are used.
        With one, only its entries are trusted. Without an identity store the
        context presents no certificate.

        Raises:
            InvalidArgumentError: If an identity store is given without a password
            InitializationError: If the context or one of its managers cannot be set up
        """
        if identity_store is not None and (not identity_password or not identity_password.strip()):
            raise InvalidArgumentError("Keystore password may not be blank")

        if not ssl.RAND_status():
            raise InitializationError("Secure random source is not seeded")

        try:
            context = self._create_context()
            self._init_trust_managers(context, trust_store)
            if identity_store is not None:
                self._init_key_managers(context, identity_store, identity_password)
        except (SSLCheckerError, ssl.SSLError, OSError, ValueError, UnsupportedAlgorithm) as e:
            raise InitializationError("Could not create SSL context instance", e) from e

        self.logger.debug(
            f"Created {self.purpose} SSL context (trust: "
            f"{'default' if trust_store is None else f'{len(trust_store)} entries'}, "
            f"identity: {'yes' if identity_store is not None else 'no'})"
        )
        return context

    def _create_context(self) -> ssl.SSLContext:
        protocol = ssl.PROTOCOL_TLS_CLIENT if self.purpose == PURPOSE_CLIENT else ssl.PROTOCOL_TLS_SERVER
        context = ssl.SSLContext(protocol)
        context.minimum_version = TLS_VERSIONS[self.minimum_version]
        return context

    def _init_trust_managers(self, context: ssl.SSLContext, trust_store: Optional[TrustStore]):
        if trust_store is None:
            if self.purpose == PURPOSE_CLIENT:
                context.load_default_certs(ssl.Purpose.SERVER_AUTH)
            else:
                context.load_default_certs(ssl.Purpose.CLIENT_AUTH)
            return

        # Explicit trust replaces the system roots
        if not trust_store.is_empty():
            context.load_verify_locations(cadata=trust_store.to_pem())

        # Every trusted certificate is an anchor, not only self-signed roots
        if hasattr(ssl, 'VERIFY_X509_PARTIAL_CHAIN'):
            context.verify_flags |= ssl.VERIFY_X509_PARTIAL_CHAIN

        if self.purpose == PURPOSE_SERVER:
            context.verify_mode = ssl.CERT_REQUIRED if self.client_cert_required else ssl.CERT_OPTIONAL

    def _init_key_managers(self, context: ssl.SSLContext, identity_store: IdentityStore, password: str):
        entries = identity_store.key_entries()
        if not entries:
            self.logger.warning("Keystore contains no key entries, no client identity will be presented")
            return

        algorithm, private_format = self._resolve_key_manager_algorithm()
        self.logger.debug(f"Used algorithm for key manager: {algorithm}")

        encryption = serialization.BestAvailableEncryption(password.encode('utf-8'))

        # ssl.SSLContext.load_cert_chain only accepts file paths, not in-memory keys
        with tempfile.TemporaryDirectory(prefix="sslchecker-") as workdir:
            for index, entry in enumerate(entries):
                key = identity_store.get_key(entry.alias, password)

                chain_path = os.path.join(workdir, f"{index}-chain.pem")
                key_path = os.path.join(workdir, f"{index}-key.pem")

                with open(chain_path, 'wb') as f:
                    for cert in entry.certificate_chain:
                        f.write(cert.public_bytes(serialization.Encoding.PEM))

                with open(key_path, 'wb') as f:
                    f.write(key.private_bytes(serialization.Encoding.PEM, private_format, encryption))

                context.load_cert_chain(certfile=chain_path, keyfile=key_path, password=password)
                self.logger.debug(f"Loaded key entry {entry.alias} into SSL context")

    def _resolve_key_manager_algorithm(self) -> Tuple[str, serialization.PrivateFormat]:
        """Use the preferred algorithm, or the default one when it is not available."""
        if self.key_manager_algorithm in KEY_MANAGER_ALGORITHMS:
            return self.key_manager_algorithm, KEY_MANAGER_ALGORITHMS[self.key_manager_algorithm]

        self.logger.debug(
            f"Key manager algorithm {self.key_manager_algorithm} is not available, "
            f"falling back to {DEFAULT_KEY_MANAGER_ALGORITHM}"
        )
        return DEFAULT_KEY_MANAGER_ALGORITHM, KEY_MANAGER_ALGORITHMS[DEFAULT_KEY_MANAGER_ALGORITHM]
