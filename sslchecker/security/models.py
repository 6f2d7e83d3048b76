"""
Security models for trust and identity material.
"""
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, Dict, Iterator, List, Optional, Tuple

from cryptography import x509
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric.types import PrivateKeyTypes

from .errors import InvalidArgumentError


@dataclass
class TrustStore:
    """
    In-memory trust container mapping labels to certificates.

    Entries keep their insertion order, which is the order the labels were
    assigned in.
    """
    entries: Dict[str, x509.Certificate] = field(default_factory=dict)

    def set_certificate_entry(self, alias: str, certificate: x509.Certificate) -> None:
        """Register a certificate under the given alias."""
        if not alias:
            raise InvalidArgumentError("alias may not be blank")
        if not isinstance(certificate, x509.Certificate):
            raise InvalidArgumentError(f"Entry {alias} is not an X.509 certificate")
        self.entries[alias] = certificate

    def get_certificate(self, alias: str) -> Optional[x509.Certificate]:
        return self.entries.get(alias)

    def aliases(self) -> List[str]:
        return list(self.entries)

    def items(self) -> List[Tuple[str, x509.Certificate]]:
        return list(self.entries.items())

    def is_empty(self) -> bool:
        return not self.entries

    def to_pem(self) -> str:
        """Concatenate all entries as PEM text, in label order."""
        return "".join(
            cert.public_bytes(serialization.Encoding.PEM).decode('ascii')
            for cert in self.entries.values()
        )

    def __len__(self) -> int:
        return len(self.entries)

    def __iter__(self) -> Iterator[str]:
        return iter(self.entries)

    def __contains__(self, alias) -> bool:
        return alias in self.entries


@dataclass
class IdentityEntry:
    """A single keystore entry: a certificate chain, optionally backed by a private key."""
    alias: str
    certificate_chain: List[x509.Certificate]
    is_key_entry: bool = True

    @property
    def certificate(self) -> Optional[x509.Certificate]:
        """The end-entity certificate of the chain."""
        return self.certificate_chain[0] if self.certificate_chain else None


@dataclass
class IdentityStore:
    """
    Password-protected identity material loaded from a keystore file.

    Certificates are readable right after loading. Private keys stay protected
    and are recovered on demand with get_key().
    """
    store_format: str
    entries: Dict[str, IdentityEntry]
    key_loader: Callable[[str, str], PrivateKeyTypes] = field(repr=False, compare=False)
    source_path: Optional[str] = None

    def aliases(self) -> List[str]:
        return list(self.entries)

    def key_entries(self) -> List[IdentityEntry]:
        return [entry for entry in self.entries.values() if entry.is_key_entry]

    def get_entry(self, alias: str) -> Optional[IdentityEntry]:
        return self.entries.get(alias)

    def get_key(self, alias: str, password: str) -> PrivateKeyTypes:
        """
        Recover the private key stored under alias.

        Args:
            alias: Alias of a key entry
            password: Password protecting the key

        Raises:
            InvalidArgumentError: If the password is blank or alias is not a key entry
            AuthenticationError: If the key cannot be recovered with the password
        """
        if not password or not password.strip():
            raise InvalidArgumentError("Key password may not be blank")

        entry = self.entries.get(alias)
        if entry is None or not entry.is_key_entry:
            raise InvalidArgumentError(f"No key entry found for alias: {alias}")

        return self.key_loader(alias, password)

    def __len__(self) -> int:
        return len(self.entries)


@dataclass
class CertificateInfo:
    """Information about a certificate."""
    subject: str
    issuer: str
    serial_number: str
    not_before: datetime
    not_after: datetime
    is_valid: bool
    fingerprint: str
