"""Configuration management for ldap-smoke."""

import os
from pathlib import Path
from typing import Any, Dict, List

# Directory under test. These mirror the docker-compose setup and are not
# read from the environment.
LDAP_HOST = "localhost"
LDAPS_PORT = 1636
LDAP_PORT = 1389
LDAPS_URI = f"ldaps://{LDAP_HOST}:{LDAPS_PORT}"
LDAP_URI = f"ldap://{LDAP_HOST}:{LDAP_PORT}"

BASE_DN = "dc=example,dc=org"
PEOPLE_BASE_DN = f"ou=people,{BASE_DN}"
GROUPS_BASE_DN = f"ou=groups,{BASE_DN}"
ADMIN_DN = f"cn=admin,{BASE_DN}"
ADMIN_PASSWORD = "admin"

TLS_CERT_FILE = "./tls/ldap.crt"
CONTAINER_CERT_FILE = "/opt/bitnami/openldap/certs/ldap.crt"

SERVICE_NAME = "openldap"
DEFAULT_FILTER = "(objectClass=*)"

_TRUE_VALUES = ("true", "1", "yes", "on")
_FALSE_VALUES = ("false", "0", "no", "off")


def _env_bool(name: str, default: bool) -> bool:
    value = os.environ.get(name)
    if value is None or value.strip() == "":
        return default
    if value.lower() in _TRUE_VALUES:
        return True
    if value.lower() in _FALSE_VALUES:
        return False
    raise ValueError(f"Invalid boolean value for {name}: {value}")


class Config:
    """Runtime settings for the smoke tester, read once from the environment."""

    def __init__(self) -> None:
        self._defaults = {
            # Logging
            "log_level": os.environ.get("LDAP_SMOKE_LOG_LEVEL", "WARNING").upper(),
            "log_dir": os.environ.get("LDAP_SMOKE_LOG_DIR", "logs"),
            "file_logging": _env_bool("LDAP_SMOKE_FILE_LOGGING", False),
            # Fixture data
            "fixtures_file": os.environ.get("LDAP_SMOKE_FIXTURES", ""),
            # Command execution
            "runtime_timeout": int(os.environ.get("LDAP_SMOKE_RUNTIME_TIMEOUT", "10")),
            "max_output_size": int(os.environ.get("LDAP_SMOKE_MAX_OUTPUT", "1048576")),  # 1MB
            # Presentation
            "color": "NO_COLOR" not in os.environ and _env_bool("LDAP_SMOKE_COLOR", True),
        }

    def __getattr__(self, name: str) -> Any:
        """Get configuration value."""
        if name == "_defaults":
            raise AttributeError(name)
        if name in self._defaults:
            return self._defaults[name]
        raise AttributeError(f"'{self.__class__.__name__}' object has no attribute '{name}'")

    def __setattr__(self, name: str, value: Any) -> None:
        """Prevent modification of configuration after initialization."""
        try:
            defaults = object.__getattribute__(self, "_defaults")
            if name in defaults:
                raise AttributeError(f"Configuration is immutable: cannot set '{name}'")
        except AttributeError as exc:
            if "immutable" in str(exc):
                raise
        super().__setattr__(name, value)

    def get(self, key: str, default: Any = None) -> Any:
        """Get configuration value with optional default."""
        return self._defaults.get(key, default)

    def validate(self) -> List[str]:
        """Validate configuration and return list of errors.

        Returns:
            List of validation error messages. Empty list means valid.
        """
        errors = []

        if self.log_level not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            errors.append(f"Unknown log level: {self.log_level}")

        if self.runtime_timeout <= 0:
            errors.append("LDAP_SMOKE_RUNTIME_TIMEOUT must be positive")

        if self.max_output_size <= 0:
            errors.append("LDAP_SMOKE_MAX_OUTPUT must be positive")

        if self.fixtures_file:
            fixtures_path = Path(self.fixtures_file)
            if not fixtures_path.is_file():
                errors.append(f"Fixtures file not found: {fixtures_path}")
            elif not os.access(fixtures_path, os.R_OK):
                errors.append(f"Fixtures file not readable: {fixtures_path}")

        return errors

    def to_dict(self) -> Dict[str, Any]:
        """Convert configuration to dictionary."""
        return self._defaults.copy()

    def __repr__(self) -> str:
        return f"Config(log_dir={self.log_dir}, fixtures_file={self.fixtures_file or None})"

    def get_startup_summary(self) -> Dict[str, Any]:
        """Key settings for startup logging. The admin password is never included."""
        return {
            "ldaps_uri": LDAPS_URI,
            "plain_uri": LDAP_URI,
            "base_dn": BASE_DN,
            "admin_dn": ADMIN_DN,
            "service_name": SERVICE_NAME,
            "fixtures_file": self.fixtures_file or "built-in",
            "runtime_timeout": self.runtime_timeout,
            "log_level": self.log_level,
            "log_dir": self.log_dir if self.file_logging else "disabled",
        }
