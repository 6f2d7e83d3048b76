"""
Helpers for generating test certificates, keystores and in-memory TLS handshakes.
"""
import ssl
from datetime import datetime, timedelta, timezone

from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import ec
from cryptography.hazmat.primitives.serialization import pkcs12
from cryptography.x509.oid import ExtendedKeyUsageOID, NameOID


def create_test_ca(common_name="Test CA", issuer_cert=None, issuer_key=None):
    """Create a CA certificate and key, self-signed unless an issuer is given."""
    private_key = ec.generate_private_key(ec.SECP256R1())
    subject = x509.Name([
        x509.NameAttribute(NameOID.ORGANIZATION_NAME, "Test Org"),
        x509.NameAttribute(NameOID.COMMON_NAME, common_name),
    ])

    signing_key = issuer_key or private_key
    issuer = issuer_cert.subject if issuer_cert is not None else subject
    authority_key = issuer_key.public_key() if issuer_key is not None else private_key.public_key()

    cert = x509.CertificateBuilder().subject_name(
        subject
    ).issuer_name(
        issuer
    ).public_key(
        private_key.public_key()
    ).serial_number(
        x509.random_serial_number()
    ).not_valid_before(
        datetime.now(timezone.utc) - timedelta(minutes=5)
    ).not_valid_after(
        datetime.now(timezone.utc) + timedelta(days=365)
    ).add_extension(
        x509.BasicConstraints(ca=True, path_length=None),
        critical=True,
    ).add_extension(
        x509.KeyUsage(
            digital_signature=True, content_commitment=False, key_encipherment=False,
            data_encipherment=False, key_agreement=False, key_cert_sign=True,
            crl_sign=True, encipher_only=False, decipher_only=False,
        ),
        critical=True,
    ).add_extension(
        x509.SubjectKeyIdentifier.from_public_key(private_key.public_key()),
        critical=False,
    ).add_extension(
        x509.AuthorityKeyIdentifier.from_issuer_public_key(authority_key),
        critical=False,
    ).sign(signing_key, hashes.SHA256())

    return cert, private_key


def create_test_cert(ca_cert, ca_key, common_name, dns_names=("localhost",)):
    """Create an end-entity certificate signed by the CA."""
    private_key = ec.generate_private_key(ec.SECP256R1())

    subject = x509.Name([
        x509.NameAttribute(NameOID.ORGANIZATION_NAME, "Test Org"),
        x509.NameAttribute(NameOID.COMMON_NAME, common_name),
    ])

    cert = x509.CertificateBuilder().subject_name(
        subject
    ).issuer_name(
        ca_cert.subject
    ).public_key(
        private_key.public_key()
    ).serial_number(
        x509.random_serial_number()
    ).not_valid_before(
        datetime.now(timezone.utc) - timedelta(minutes=5)
    ).not_valid_after(
        datetime.now(timezone.utc) + timedelta(days=30)
    ).add_extension(
        x509.BasicConstraints(ca=False, path_length=None),
        critical=True,
    ).add_extension(
        x509.KeyUsage(
            digital_signature=True, content_commitment=False, key_encipherment=False,
            data_encipherment=False, key_agreement=False, key_cert_sign=False,
            crl_sign=False, encipher_only=False, decipher_only=False,
        ),
        critical=True,
    ).add_extension(
        x509.ExtendedKeyUsage([ExtendedKeyUsageOID.SERVER_AUTH, ExtendedKeyUsageOID.CLIENT_AUTH]),
        critical=False,
    ).add_extension(
        x509.SubjectAlternativeName([x509.DNSName(name) for name in dns_names]),
        critical=False,
    ).add_extension(
        x509.SubjectKeyIdentifier.from_public_key(private_key.public_key()),
        critical=False,
    ).add_extension(
        x509.AuthorityKeyIdentifier.from_issuer_public_key(ca_key.public_key()),
        critical=False,
    ).sign(ca_key, hashes.SHA256())

    return cert, private_key


def to_pem(cert) -> str:
    return cert.public_bytes(serialization.Encoding.PEM).decode('ascii')


def write_pem_bundle(path, certs, prefix="", separator=""):
    """Write certificates as consecutive PEM blocks."""
    with open(path, 'w') as f:
        f.write(prefix)
        f.write(separator.join(to_pem(cert) for cert in certs))


def write_pkcs12(path, key, cert, password, cas=None, friendly_name=b"identity"):
    """Write a PKCS#12 keystore protected by password."""
    data = pkcs12.serialize_key_and_certificates(
        friendly_name,
        key,
        cert,
        cas,
        serialization.BestAvailableEncryption(password.encode('utf-8')),
    )
    with open(path, 'wb') as f:
        f.write(data)


def write_pem_keystore(path, key, chain, password=None):
    """Write a certificate chain and a private key into one PEM file."""
    if password:
        encryption = serialization.BestAvailableEncryption(password.encode('utf-8'))
    else:
        encryption = serialization.NoEncryption()

    with open(path, 'wb') as f:
        for cert in chain:
            f.write(cert.public_bytes(serialization.Encoding.PEM))
        f.write(key.private_bytes(
            encoding=serialization.Encoding.PEM,
            format=serialization.PrivateFormat.PKCS8,
            encryption_algorithm=encryption,
        ))


def create_server_context(temp_dir, cert, key, chain=()):
    """Create a plain server context serving cert (plus chain) without client auth."""
    cert_path = f"{temp_dir}/server-chain.pem"
    key_path = f"{temp_dir}/server-key.pem"
    write_pem_bundle(cert_path, [cert, *chain])
    write_pem_keystore(key_path, key, [])

    context = ssl.SSLContext(ssl.PROTOCOL_TLS_SERVER)
    context.load_cert_chain(certfile=cert_path, keyfile=key_path)
    return context


def perform_handshake(client_context, server_context, server_hostname="localhost"):
    """
    Run a TLS handshake between two contexts over memory BIOs.

    Returns the client and server SSLObjects. Verification failures raise
    ssl.SSLError from whichever side detects them.
    """
    client_in, client_out = ssl.MemoryBIO(), ssl.MemoryBIO()
    server_in, server_out = ssl.MemoryBIO(), ssl.MemoryBIO()

    client = client_context.wrap_bio(client_in, client_out, server_side=False, server_hostname=server_hostname)
    server = server_context.wrap_bio(server_in, server_out, server_side=True)

    client_done = server_done = False
    for _ in range(10):
        if not client_done:
            try:
                client.do_handshake()
                client_done = True
            except ssl.SSLWantReadError:
                pass
        server_in.write(client_out.read())

        if not server_done:
            try:
                server.do_handshake()
                server_done = True
            except ssl.SSLWantReadError:
                pass
        client_in.write(server_out.read())

        if client_done and server_done:
            return client, server

    raise AssertionError("TLS handshake did not complete")
