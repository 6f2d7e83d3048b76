"""
Security package for assembling SSL contexts from certificates and keystores.
"""
from .errors import (
    SSLCheckerError,
    NotFoundError,
    InvalidArgumentError,
    MalformedInputError,
    AuthenticationError,
    InitializationError,
    UnexpectedResponseError,
)
from .models import TrustStore, IdentityStore, IdentityEntry, CertificateInfo
from .pem_importer import CertificateImporter
from .trust_store import TrustStoreBuilder
from .keystore_loader import KeystoreLoader
from .tls_context import SSLContextAssembler
from .security_service import SecurityService

__all__ = [
    'SSLCheckerError',
    'NotFoundError',
    'InvalidArgumentError',
    'MalformedInputError',
    'AuthenticationError',
    'InitializationError',
    'UnexpectedResponseError',
    'TrustStore',
    'IdentityStore',
    'IdentityEntry',
    'CertificateInfo',
    'CertificateImporter',
    'TrustStoreBuilder',
    'KeystoreLoader',
    'SSLContextAssembler',
    'SecurityService',
]
