#!/usr/bin/env python3
"""
Example script demonstrating how trust and identity material turn into an SSL context.
"""
import sys

from sslchecker.security import (
    CertificateImporter,
    KeystoreLoader,
    SSLCheckerError,
    SSLContextAssembler,
    TrustStoreBuilder,
)
from sslchecker.services.http_service import HttpService


def main():
    """Build a context from a CA bundle and an optional keystore, then fetch a URL."""
    if len(sys.argv) < 3:
        print(f"Usage: {sys.argv[0]} CA_BUNDLE URL [KEYSTORE PASSWORD]")
        return 2

    ca_bundle, url = sys.argv[1], sys.argv[2]
    keystore_path = sys.argv[3] if len(sys.argv) > 3 else None
    password = sys.argv[4] if len(sys.argv) > 4 else None

    print("=== SSL Checker Demo ===\n")

    try:
        print(f"1. Importing certificates from {ca_bundle}...")
        certificates = CertificateImporter().import_certificates(ca_bundle)
        print(f"✓ Found {len(certificates)} certificate(s)")

        print("\n2. Building trust store...")
        trust_store = TrustStoreBuilder().build(certificates)
        for alias, cert in trust_store.items():
            print(f"  - [{alias}] {cert.subject.rfc4514_string()}")

        identity_store = None
        if keystore_path:
            print(f"\n3. Loading keystore {keystore_path}...")
            identity_store = KeystoreLoader().load(keystore_path, password)
            print(f"✓ Loaded {identity_store.store_format} keystore with aliases: {identity_store.aliases()}")

        print("\n4. Assembling SSL context...")
        context = SSLContextAssembler().assemble(trust_store, identity_store, password)
        print("✓ SSL context ready")

        print(f"\n5. Fetching {url}...")
        http_service = HttpService(context)
        body = http_service.get_request(url)
        http_service.close()
        print(f"✓ Received {len(body)} characters")

    except SSLCheckerError as e:
        print(f"✗ {type(e).__name__}: {e}")
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
