"""
Configuration data models for the SSL checker.
"""
from dataclasses import dataclass
from typing import Optional


@dataclass
class Config:
    """Main configuration class containing all checker settings."""

    # Trust settings
    ca_certs_path: Optional[str] = None

    # Identity settings
    keystore_path: Optional[str] = None
    keystore_password: Optional[str] = None
    keystore_type: str = "PKCS12"
    key_password: Optional[str] = None

    # TLS settings
    context_purpose: str = "client"
    key_manager_algorithm: str = "PKCS8"
    minimum_tls_version: str = "TLSv1_2"
    client_cert_required: bool = True

    # Check settings
    check_url: Optional[str] = None
    request_timeout_seconds: int = 30

    # Application settings
    log_level: str = "INFO"
    log_file_path: Optional[str] = None

    def __post_init__(self):
        """Validate configuration after initialization."""
        self._validate_types()

    def _validate_types(self):
        """Ensure all configuration values have correct types."""
        if self.context_purpose not in ["client", "server"]:
            raise ValueError("context_purpose must be one of: client, server")

        if self.minimum_tls_version not in ["TLSv1_2", "TLSv1_3"]:
            raise ValueError("minimum_tls_version must be one of: TLSv1_2, TLSv1_3")

        if not isinstance(self.request_timeout_seconds, int) or self.request_timeout_seconds <= 0:
            raise ValueError("request_timeout_seconds must be a positive integer")

        if self.log_level not in ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]:
            raise ValueError("log_level must be one of: DEBUG, INFO, WARNING, ERROR, CRITICAL")


@dataclass
class ConfigValidationError:
    """Represents a configuration validation error."""
    field: str
    message: str
    severity: str = "error"  # error, warning

    def __str__(self):
        return f"{self.severity.upper()}: {self.field} - {self.message}"


@dataclass
class ConfigValidationResult:
    """Result of configuration validation."""
    is_valid: bool
    errors: list[ConfigValidationError]
    warnings: list[ConfigValidationError]

    def __post_init__(self):
        """Separate errors and warnings."""
        all_issues = self.errors + self.warnings
        self.errors = [e for e in all_issues if e.severity == "error"]
        self.warnings = [e for e in all_issues if e.severity == "warning"]

    def has_errors(self) -> bool:
        """Check if there are any validation errors."""
        return len(self.errors) > 0

    def has_warnings(self) -> bool:
        """Check if there are any validation warnings."""
        return len(self.warnings) > 0

    def get_error_summary(self) -> str:
        """Get a formatted summary of all errors and warnings."""
        lines = []

        if self.errors:
            lines.append("Configuration Errors:")
            for error in self.errors:
                lines.append(f"  - {error}")

        if self.warnings:
            lines.append("Configuration Warnings:")
            for warning in self.warnings:
                lines.append(f"  - {warning}")

        return "\n".join(lines) if lines else "Configuration is valid"
