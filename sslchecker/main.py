"""
Command-line entry point for the SSL checker.
Resolves options into trust and identity material, assembles an SSL context
and optionally checks a URL with it.
"""

import os
import sys
import logging
from typing import Optional, Dict, Any

import requests

from .models.config import Config
from .security.errors import SSLCheckerError
from .security.security_service import SecurityService
from .services.config_service import ConfigService
from .services.http_service import HttpService
from .services.logging_service import LoggingService


class SSLCheckerApplication:
    """Main application class for the SSL checker."""

    def __init__(self, config_path: Optional[str] = None, overrides: Optional[Dict[str, Any]] = None):
        """
        Initialize the SSL checker application.

        Args:
            config_path: Path to configuration file (optional)
            overrides: Config values given on the command line
        """
        self.config_path = config_path
        self.overrides = overrides or {}
        self.logger = logging.getLogger(__name__)
        self.config_service = ConfigService()
        self.config: Optional[Config] = None
        self.logging_service = None
        self.security_service = None
        self.ssl_context = None
        self.trust_store = None
        self.context_timing = None

    def initialize(self) -> bool:
        """
        Load configuration and set up logging.

        Returns:
            True if initialization successful, False otherwise
        """
        try:
            if self.config_path:
                self.config = self.config_service.load_config(self.config_path, self.overrides)
            else:
                self.config = self.config_service.create_config(self.overrides)
        except (FileNotFoundError, ValueError) as e:
            self.logger.error(f"Failed to load configuration: {e}")
            return False

        self.logging_service = LoggingService(self.config)
        self.security_service = SecurityService(self.config)
        return True

    def build_ssl_context(self):
        """Assemble the SSL context from the configured sources."""
        with self.logging_service.time_step(
            "assemble_ssl_context",
            purpose=self.config.context_purpose,
            ca_certs_path=self.config.ca_certs_path,
            keystore_format=self.config.keystore_type if self.config.keystore_path else None,
        ) as timing:
            self.ssl_context, self.trust_store = self.security_service.create_ssl_context_with_trust()
            timing.details['trust_entries'] = len(self.trust_store) if self.trust_store is not None else None

        self.context_timing = timing
        self.logger.debug(f"Minimum protocol: {self.ssl_context.minimum_version.name}")
        return self.ssl_context

    def list_trust_store(self) -> None:
        """Print the entries of the configured trust store."""
        if self.trust_store is None:
            print("Using the system default trust store")
            return

        for alias, info in self.security_service.describe_trust_store(self.trust_store):
            print(f"[{alias}] {info.subject}")
            print(f"    Issuer:      {info.issuer}")
            print(f"    Serial:      {info.serial_number}")
            print(f"    Valid:       {info.not_before.isoformat()} - {info.not_after.isoformat()}"
                  f"{'' if info.is_valid else ' (not currently valid)'}")
            print(f"    Fingerprint: {info.fingerprint}")

    def check_url(self, url: str) -> str:
        """Fetch a URL through the assembled SSL context."""
        http_service = HttpService(self.ssl_context, timeout=self.config.request_timeout_seconds)
        try:
            with self.logging_service.time_step("check_url", url=url) as timing:
                body = http_service.get_request(url)
                timing.details['characters'] = len(body)
            return body
        finally:
            http_service.close()

    def get_status(self) -> dict:
        """Get application status information."""
        return {
            'config_path': self.config_path,
            'ca_certs_path': self.config.ca_certs_path if self.config else None,
            'keystore_path': self.config.keystore_path if self.config else None,
            'keystore_type': self.config.keystore_type if self.config else None,
            'context_purpose': self.config.context_purpose if self.config else None,
            'check_url': self.config.check_url if self.config else None,
        }


def main(argv=None):
    """Main entry point for the application."""
    import argparse

    parser = argparse.ArgumentParser(description='Checks TLS connections using custom trust and identity material')
    parser.add_argument('--config', '-c', help='Configuration file path')
    parser.add_argument('--CAcerts', '--ca-certs', dest='ca_certs_path',
                        help='Path and name of the CA certificates file')
    parser.add_argument('--keystore', dest='keystore_path', help='Path to the identity keystore')
    parser.add_argument('--keystore-password', dest='keystore_password', help='Password of the identity keystore')
    parser.add_argument('--keystore-type', dest='keystore_type', help='Keystore format (PKCS12 or PEM)')
    parser.add_argument('--key-password', dest='key_password',
                        help='Password of the private key (defaults to the keystore password)')
    parser.add_argument('--server', action='store_true', help='Assemble a server context instead of a client one')
    parser.add_argument('--url', dest='check_url', help='URL to fetch with the assembled context')
    parser.add_argument('--timeout', type=int, dest='request_timeout_seconds', help='Request timeout in seconds')
    parser.add_argument('--list-trust', action='store_true', help='Print the entries of the trust store')
    parser.add_argument('--check-config', action='store_true', help='Check configuration and exit')
    parser.add_argument('--debug', action='store_true', help='Enable debug logging')

    args = parser.parse_args(argv)

    overrides = {
        'ca_certs_path': args.ca_certs_path,
        'keystore_path': args.keystore_path,
        'keystore_password': args.keystore_password,
        'keystore_type': args.keystore_type,
        'key_password': args.key_password,
        'check_url': args.check_url,
        'request_timeout_seconds': args.request_timeout_seconds,
        'context_purpose': 'server' if args.server else None,
        'log_level': 'DEBUG' if args.debug else None,
    }

    if args.config and not os.path.exists(args.config):
        config_service = ConfigService()
        config_service.create_default_config_file(args.config)
        print(f"Default configuration created at: {args.config}")
        print("Please edit the configuration file and run again")
        return 1

    app = SSLCheckerApplication(config_path=args.config, overrides=overrides)

    if not app.initialize():
        print("Failed to initialize application")
        return 1

    if args.check_config:
        status = app.get_status()
        print("Configuration check passed")
        print(f"CA certificates: {status['ca_certs_path'] or 'system default'}")
        print(f"Keystore: {status['keystore_path'] or 'none'}")
        print(f"Context purpose: {status['context_purpose']}")
        return 0

    try:
        app.build_ssl_context()

        if args.list_trust:
            app.list_trust_store()

        if app.config.check_url:
            body = app.check_url(app.config.check_url)
            print(f"GET {app.config.check_url} succeeded ({len(body)} characters received)")
        else:
            print(f"SSL context created successfully ({app.context_timing.duration_ms:.1f} ms)")

    except (SSLCheckerError, requests.exceptions.RequestException) as e:
        app.logger.error(f"An error occurred: {e}")
        return 1

    return 0


if __name__ == '__main__':
    sys.exit(main())
