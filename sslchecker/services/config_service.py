"""
Configuration service for loading and validating checker settings.
"""
import os
import configparser
from typing import Optional, Dict, Any
import logging

from ..models.config import Config, ConfigValidationError, ConfigValidationResult

# Maps property keys to (Config field, type). Both namespaced and bare keys are accepted.
CONFIG_MAPPING = {
    # Trust settings
    "trust.ca_certs_path": ("ca_certs_path", "optional"),
    "ca_certs_path": ("ca_certs_path", "optional"),

    # Identity settings
    "identity.keystore_path": ("keystore_path", "optional"),
    "keystore_path": ("keystore_path", "optional"),
    "identity.keystore_password": ("keystore_password", "optional"),
    "keystore_password": ("keystore_password", "optional"),
    "identity.keystore_type": ("keystore_type", str),
    "keystore_type": ("keystore_type", str),
    "identity.key_password": ("key_password", "optional"),
    "key_password": ("key_password", "optional"),

    # TLS settings
    "tls.context_purpose": ("context_purpose", str),
    "context_purpose": ("context_purpose", str),
    "tls.key_manager_algorithm": ("key_manager_algorithm", str),
    "key_manager_algorithm": ("key_manager_algorithm", str),
    "tls.minimum_version": ("minimum_tls_version", str),
    "minimum_tls_version": ("minimum_tls_version", str),
    "tls.client_cert_required": ("client_cert_required", bool),
    "client_cert_required": ("client_cert_required", bool),

    # Check settings
    "check.url": ("check_url", "optional"),
    "check_url": ("check_url", "optional"),
    "check.request_timeout_seconds": ("request_timeout_seconds", int),
    "request_timeout_seconds": ("request_timeout_seconds", int),

    # Application settings
    "app.log_level": ("log_level", str),
    "log_level": ("log_level", str),
    "app.log_file_path": ("log_file_path", "optional"),
    "log_file_path": ("log_file_path", "optional"),
}


class ConfigService:
    """Service for loading and validating checker configuration."""

    def __init__(self, config_path: Optional[str] = None):
        self.logger = logging.getLogger(__name__)
        self._config = None
        if config_path:
            self._config = self.load_config(config_path)

    def get_config(self) -> Config:
        """
        Get the loaded configuration.

        Returns:
            Config object

        Raises:
            ValueError: If no configuration has been loaded
        """
        if self._config is None:
            raise ValueError("No configuration loaded. Call load_config() first.")
        return self._config

    def load_config(self, config_path: str, overrides: Optional[Dict[str, Any]] = None) -> Config:
        """
        Load configuration from a property file.

        Args:
            config_path: Path to the configuration file
            overrides: Config field values that take precedence over the file,
                e.g. values given on the command line. None values are ignored.

        Returns:
            Config object with loaded settings

        Raises:
            FileNotFoundError: If config file doesn't exist
            ValueError: If config file is invalid or has validation errors
        """
        if not os.path.exists(config_path):
            raise FileNotFoundError(f"Configuration file not found: {config_path}")

        config_data = self._load_config_file(config_path)
        config_kwargs = self._create_kwargs_from_data(config_data)
        config_kwargs.update({k: v for k, v in (overrides or {}).items() if v is not None})

        config = Config(**config_kwargs)
        self._check(config)

        self._config = config
        return config

    def create_config(self, overrides: Optional[Dict[str, Any]] = None) -> Config:
        """Create and validate a configuration from explicit values only."""
        config = Config(**{k: v for k, v in (overrides or {}).items() if v is not None})
        self._check(config)
        self._config = config
        return config

    def _check(self, config: Config) -> None:
        validation_result = self.validate_config(config)

        if validation_result.has_errors():
            error_summary = validation_result.get_error_summary()
            raise ValueError(f"Configuration validation failed:\n{error_summary}")

        if validation_result.has_warnings():
            warning_summary = validation_result.get_error_summary()
            self.logger.warning(f"Configuration warnings:\n{warning_summary}")

    def _load_config_file(self, config_path: str) -> Dict[str, Any]:
        """Load configuration data from file."""
        # Passwords may contain '%', so no interpolation
        config_parser = configparser.ConfigParser(interpolation=None)

        try:
            config_parser.read(config_path)
        except configparser.Error as e:
            raise ValueError(f"Failed to parse configuration file: {e}")

        config_data = {}
        for section in config_parser.sections():
            for key, value in config_parser.items(section):
                config_data[f"{section}.{key}"] = value

        for key, value in config_parser.defaults().items():
            config_data.setdefault(key, value)

        return config_data

    def _create_kwargs_from_data(self, config_data: Dict[str, Any]) -> Dict[str, Any]:
        """Convert raw configuration data to Config keyword arguments."""
        config_kwargs = {}

        for config_key, raw_value in config_data.items():
            if config_key not in CONFIG_MAPPING:
                continue

            field_name, field_type = CONFIG_MAPPING[config_key]
            try:
                if field_type == bool:
                    value = self._parse_bool(raw_value)
                elif field_type == int:
                    value = int(raw_value)
                elif field_type == "optional":
                    value = raw_value.strip() if raw_value and raw_value.strip() else None
                else:
                    value = str(raw_value).strip()

                config_kwargs[field_name] = value
            except (ValueError, TypeError) as e:
                raise ValueError(f"Invalid value for {config_key}: {raw_value} ({e})")

        return config_kwargs

    def _parse_bool(self, value: Any) -> bool:
        """Parse boolean value from string."""
        if isinstance(value, bool):
            return value
        if isinstance(value, str):
            return value.lower() in ("true", "yes", "1", "on", "enabled")
        return bool(value)

    def validate_config(self, config: Config) -> ConfigValidationResult:
        """
        Validate configuration settings.

        Args:
            config: Configuration object to validate

        Returns:
            ConfigValidationResult with validation results
        """
        errors = []
        warnings = []

        # Validate trust settings
        if config.ca_certs_path is not None:
            if not config.ca_certs_path.strip():
                errors.append(ConfigValidationError(
                    "ca_certs_path",
                    "The specified value for CAcerts may not be blank"
                ))
            elif not os.path.exists(config.ca_certs_path):
                errors.append(ConfigValidationError(
                    "ca_certs_path",
                    f"CA certificates file not found: {config.ca_certs_path}"
                ))

        # Validate identity settings
        if config.keystore_path is not None:
            if not config.keystore_path.strip():
                errors.append(ConfigValidationError(
                    "keystore_path",
                    "Keystore path may not be blank"
                ))
            elif not os.path.exists(config.keystore_path):
                errors.append(ConfigValidationError(
                    "keystore_path",
                    f"Keystore file not found: {config.keystore_path}"
                ))

            if not config.keystore_password:
                errors.append(ConfigValidationError(
                    "keystore_password",
                    "Keystore password is required when a keystore is given"
                ))
        elif config.keystore_password or config.key_password:
            warnings.append(ConfigValidationError(
                "keystore_password",
                "Keystore password is ignored because no keystore is given",
                "warning"
            ))

        if config.context_purpose == "server" and config.keystore_path is None:
            warnings.append(ConfigValidationError(
                "keystore_path",
                "Server contexts without a keystore cannot complete handshakes",
                "warning"
            ))

        # Validate log file path
        if config.log_file_path:
            log_dir = os.path.dirname(config.log_file_path)
            if log_dir and not os.path.exists(log_dir):
                warnings.append(ConfigValidationError(
                    "log_file_path",
                    f"Log directory does not exist: {log_dir}",
                    "warning"
                ))

        if config.request_timeout_seconds > 300:
            warnings.append(ConfigValidationError(
                "request_timeout_seconds",
                "Request timeout over 5 minutes may cause performance issues",
                "warning"
            ))

        all_issues = errors + warnings
        return ConfigValidationResult(
            is_valid=len(errors) == 0,
            errors=all_issues,
            warnings=[]
        )

    def create_default_config_file(self, config_path: str) -> None:
        """
        Create a default configuration file with example settings.

        Args:
            config_path: Path where to create the config file
        """
        config_content = """# SSL Checker Configuration File

[trust]
# PEM file with the CA certificates to trust instead of the system roots
ca_certs_path =

[identity]
keystore_path =
keystore_password =
keystore_type = PKCS12
key_password =

[tls]
context_purpose = client
key_manager_algorithm = PKCS8
minimum_version = TLSv1_2
client_cert_required = true

[check]
url =
request_timeout_seconds = 30

[app]
log_level = INFO
log_file_path =
"""

        config_dir = os.path.dirname(config_path)
        if config_dir:
            os.makedirs(config_dir, exist_ok=True)

        with open(config_path, 'w') as f:
            f.write(config_content)

        self.logger.info(f"Created default configuration file: {config_path}")
