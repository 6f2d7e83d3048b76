"""
Loader for password-protected identity keystores.

Two storage formats are recognized:

- PKCS12 (default, also accepted as P12 or PFX): a binary PFX container.
- PEM: a text file holding a certificate chain and a private key, the key
  optionally encrypted.
"""
import functools
import io
import logging
import os
import re
from typing import Dict, List, Optional

from cryptography import x509
from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric.types import PrivateKeyTypes
from cryptography.hazmat.primitives.serialization import pkcs12

from .errors import AuthenticationError, InvalidArgumentError, MalformedInputError, NotFoundError
from .models import IdentityEntry, IdentityStore
from .pem_importer import CertificateImporter

DEFAULT_FORMAT = "PKCS12"

FORMAT_ALIASES = {
    "P12": "PKCS12",
    "PFX": "PKCS12",
}

_PRIVATE_KEY_BLOCK = re.compile(
    r"-----BEGIN ((?:ENCRYPTED |RSA |EC |DSA )?PRIVATE KEY)-----.*?-----END \1-----",
    re.DOTALL,
)


_SEQUENCE = 0x30
_INTEGER = 0x02
_MAX_NESTING = 32


def _read_tlv(data: bytes, offset: int, depth: int = 0):
    """
    Read one BER element at offset.

    Returns (tag, content_start, content_end, next_offset). Indefinite
    lengths are followed to their end-of-contents marker. Raises ValueError
    when the element runs past the end of data.
    """
    if depth > _MAX_NESTING:
        raise ValueError("Nesting too deep")
    if offset + 2 > len(data):
        raise ValueError("Element header past end of data")

    tag = data[offset]
    offset += 1
    if tag & 0x1F == 0x1F:
        while offset < len(data) and data[offset] & 0x80:
            offset += 1
        offset += 1
        if offset >= len(data):
            raise ValueError("Element tag past end of data")

    length_byte = data[offset]
    offset += 1

    if length_byte == 0x80:
        if not tag & 0x20:
            raise ValueError("Indefinite length on a primitive element")
        position = offset
        while data[position:position + 2] != b"\x00\x00":
            _, _, _, position = _read_tlv(data, position, depth + 1)
        return tag, offset, position, position + 2

    if length_byte & 0x80:
        count = length_byte & 0x7F
        if count > 4 or offset + count > len(data):
            raise ValueError("Bad length encoding")
        length = int.from_bytes(data[offset:offset + count], 'big')
        offset += count
    else:
        length = length_byte

    end = offset + length
    if end > len(data):
        raise ValueError("Element content past end of data")
    return tag, offset, end, end


def _public_key_der(public_key) -> bytes:
    return public_key.public_bytes(
        serialization.Encoding.DER,
        serialization.PublicFormat.SubjectPublicKeyInfo,
    )


class KeystoreFormat:
    """Interface for keystore storage formats."""

    name = None

    def load(self, data: bytes, password: str) -> Dict[str, IdentityEntry]:
        """Open the keystore and return its entries keyed by alias."""
        raise NotImplementedError

    def recover_key(self, data: bytes, alias: str, password: str) -> PrivateKeyTypes:
        """Recover the private key of a key entry."""
        raise NotImplementedError


class PKCS12Format(KeystoreFormat):
    """PKCS#12 (PFX) keystores."""

    name = "PKCS12"

    def load(self, data: bytes, password: str) -> Dict[str, IdentityEntry]:
        if not self._is_pfx_structure(data):
            raise MalformedInputError("Keystore is not in PKCS12 format")

        bundle = self._open(data, password)
        entries = {}

        if bundle.key is not None and bundle.cert is not None:
            alias = self._alias(bundle.cert, "1")
            chain = [bundle.cert.certificate] + [c.certificate for c in bundle.additional_certs]
            entries[alias] = IdentityEntry(alias=alias, certificate_chain=chain, is_key_entry=True)
        else:
            certs = ([bundle.cert] if bundle.cert is not None else []) + list(bundle.additional_certs)
            for index, cert in enumerate(certs, start=1):
                alias = self._alias(cert, str(index))
                if alias in entries:
                    alias = str(index)
                entries[alias] = IdentityEntry(alias=alias, certificate_chain=[cert.certificate], is_key_entry=False)

        return entries

    def recover_key(self, data: bytes, alias: str, password: str) -> PrivateKeyTypes:
        try:
            bundle = pkcs12.load_pkcs12(data, password.encode('utf-8'))
        except ValueError as e:
            raise AuthenticationError(f"Key {alias} cannot be recovered with the given password") from e

        if bundle.key is None:
            raise InvalidArgumentError(f"No key entry found for alias: {alias}")
        return bundle.key

    def _open(self, data: bytes, password: str) -> pkcs12.PKCS12KeyAndCertificates:
        try:
            return pkcs12.load_pkcs12(data, password.encode('utf-8'))
        except ValueError as e:
            raise AuthenticationError("Keystore cannot be opened with the given password") from e
        except UnsupportedAlgorithm as e:
            raise MalformedInputError(f"Keystore uses an unsupported algorithm: {e}") from e

    def _alias(self, cert: pkcs12.PKCS12Certificate, fallback: str) -> str:
        if cert.friendly_name:
            return cert.friendly_name.decode('utf-8', errors='replace')
        return fallback

    @staticmethod
    def _is_pfx_structure(data: bytes) -> bool:
        """
        Check the PFX outer structure.

        The file must be exactly one SEQUENCE holding INTEGER 3, the authSafe
        ContentInfo SEQUENCE and an optional MacData SEQUENCE. Truncated or
        padded files fail here, so a later decode error can only come from
        the password.
        """
        try:
            tag, start, end, next_offset = _read_tlv(data, 0)
            if tag != _SEQUENCE or next_offset != len(data):
                return False

            children = []
            offset = start
            while offset < end:
                child_tag, child_start, child_end, offset = _read_tlv(data, offset)
                children.append((child_tag, data[child_start:child_end]))
        except ValueError:
            return False

        if len(children) not in (2, 3):
            return False
        if children[0] != (_INTEGER, b"\x03"):
            return False
        return all(child_tag == _SEQUENCE for child_tag, _ in children[1:])


class PEMFormat(KeystoreFormat):
    """Certificate chain and private key stored together as PEM text."""

    name = "PEM"

    def __init__(self, certificate_importer: CertificateImporter = None):
        self.certificate_importer = certificate_importer or CertificateImporter()

    def load(self, data: bytes, password: str) -> Dict[str, IdentityEntry]:
        text = self._decode(data)
        certificates = self.certificate_importer.import_certificates(io.StringIO(text))

        key_block = self._find_key_block(text)
        if key_block is None:
            return {
                str(index): IdentityEntry(alias=str(index), certificate_chain=[cert], is_key_entry=False)
                for index, cert in enumerate(certificates, start=1)
            }

        key = self._load_key(key_block, password)
        chain = self._order_chain(key, certificates)
        return {"1": IdentityEntry(alias="1", certificate_chain=chain, is_key_entry=True)}

    def recover_key(self, data: bytes, alias: str, password: str) -> PrivateKeyTypes:
        key_block = self._find_key_block(self._decode(data))
        if key_block is None:
            raise InvalidArgumentError(f"No key entry found for alias: {alias}")
        return self._load_key(key_block, password)

    def _decode(self, data: bytes) -> str:
        try:
            return data.decode('ascii')
        except UnicodeDecodeError as e:
            raise MalformedInputError("Keystore is not in PEM format") from e

    def _find_key_block(self, text: str) -> Optional[str]:
        match = _PRIVATE_KEY_BLOCK.search(text)
        return match.group(0) if match else None

    def _load_key(self, key_block: str, password: str) -> PrivateKeyTypes:
        encrypted = "ENCRYPTED" in key_block
        try:
            return serialization.load_pem_private_key(
                key_block.encode('ascii'),
                password=password.encode('utf-8') if encrypted else None,
            )
        except ValueError as e:
            if encrypted:
                raise AuthenticationError("Private key cannot be decrypted with the given password") from e
            raise MalformedInputError(f"Private key is not valid: {e}") from e
        except (TypeError, UnsupportedAlgorithm) as e:
            raise MalformedInputError(f"Private key is not valid: {e}") from e

    def _order_chain(self, key: PrivateKeyTypes, certificates: List[x509.Certificate]) -> List[x509.Certificate]:
        """Move the certificate matching the key to the front of the chain."""
        key_der = _public_key_der(key.public_key())
        for index, cert in enumerate(certificates):
            if _public_key_der(cert.public_key()) == key_der:
                return [cert] + certificates[:index] + certificates[index + 1:]
        raise MalformedInputError("Private key does not match any certificate in the keystore")


class KeystoreLoader:
    """Opens keystore files under a storage format and password."""

    def __init__(self, default_format: str = DEFAULT_FORMAT):
        self.logger = logging.getLogger(__name__)
        self.formats = {
            PKCS12Format.name: PKCS12Format(),
            PEMFormat.name: PEMFormat(),
        }
        if not default_format or not default_format.strip():
            default_format = DEFAULT_FORMAT
        self.default_format = self._lookup(default_format).name

    def resolve_format(self, store_format: Optional[str] = None) -> KeystoreFormat:
        """
        Map a format name to its handler.

        Blank names select the default format. Unknown names raise
        MalformedInputError.
        """
        if not store_format or not store_format.strip():
            store_format = self.default_format
        return self._lookup(store_format)

    def _lookup(self, store_format: str) -> KeystoreFormat:
        name = store_format.strip().upper()
        name = FORMAT_ALIASES.get(name, name)

        handler = self.formats.get(name)
        if handler is None:
            raise MalformedInputError(f"Unsupported keystore format: {store_format}")
        return handler

    def load(self, path: os.PathLike, password: str, store_format: Optional[str] = None) -> IdentityStore:
        """
        Load a keystore file.

        Args:
            path: Path to the keystore file
            password: Keystore password
            store_format: Storage format name, the default format when blank

        Returns:
            IdentityStore with all entries of the file

        Raises:
            InvalidArgumentError: If path or password is blank
            NotFoundError: If path is not a readable file
            MalformedInputError: If the file is not in the requested format
            AuthenticationError: If the password does not open the keystore
        """
        if path is None or not str(path).strip():
            raise InvalidArgumentError("Keystore path may not be blank")
        if not password or not password.strip():
            raise InvalidArgumentError("Keystore password may not be blank")

        path = os.fspath(path)
        if not os.path.isfile(path) or not os.access(path, os.R_OK):
            raise NotFoundError(f"Keystore file not found: {path}")

        handler = self.resolve_format(store_format)

        with open(path, 'rb') as f:
            data = f.read()

        entries = handler.load(data, password)
        self.logger.debug(f"Loaded {handler.name} keystore {path} with {len(entries)} entries")

        return IdentityStore(
            store_format=handler.name,
            entries=entries,
            key_loader=functools.partial(handler.recover_key, data),
            source_path=path,
        )
