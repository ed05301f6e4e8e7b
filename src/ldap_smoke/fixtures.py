"""
Fixture data: the entries the directory is expected to contain.

The built-in set matches the LDIF imported by the compose setup. A YAML
file can replace it::

    entries:
      - username: john.doe
        common_name: John Doe
        password: test
"""

import logging
import os
from typing import Any, Dict, List, Optional, Tuple

import jsonschema
import yaml

from .probes.models import DirectoryEntryExpectation

logger = logging.getLogger(__name__)

MAX_FIXTURES_FILE_SIZE = 1024 * 1024

DEFAULT_EXPECTATIONS: Tuple[DirectoryEntryExpectation, ...] = (
    DirectoryEntryExpectation("john.doe", "John Doe", "test"),
    DirectoryEntryExpectation("jane.smith", "Jane Smith", "test"),
    DirectoryEntryExpectation("admin", "Admin User", "admin"),
)

FIXTURES_SCHEMA: Dict[str, Any] = {
    "type": "object",
    "properties": {
        "entries": {
            "type": "array",
            "minItems": 1,
            "items": {
                "type": "object",
                "properties": {
                    "username": {"type": "string", "minLength": 1, "pattern": "^[^,=()*\\\\]+$"},
                    "common_name": {"type": "string", "minLength": 1},
                    "password": {"type": ["string", "null"]},
                },
                "required": ["username", "common_name"],
                "additionalProperties": False,
            },
        },
    },
    "required": ["entries"],
    "additionalProperties": False,
}


class FixtureLoadError(Exception):
    """Raised when the fixtures file cannot be read or parsed."""

    pass


class FixtureValidationError(Exception):
    """Raised when the fixtures file content does not match the schema."""

    pass


def _read_yaml(path: str) -> Any:
    if os.path.getsize(path) > MAX_FIXTURES_FILE_SIZE:
        raise FixtureLoadError(f"Fixtures file exceeds maximum size limit: {path}")

    with open(path, encoding="utf-8") as handle:
        try:
            return yaml.safe_load(handle)
        except yaml.YAMLError as e:
            raise FixtureLoadError(f"Fixtures file contains invalid YAML: {e}") from e


def parse_expectations(data: Any) -> List[DirectoryEntryExpectation]:
    """
    Build expectations from already-parsed fixture data.

    Raises:
        FixtureValidationError: If the data does not match FIXTURES_SCHEMA
    """
    try:
        jsonschema.validate(instance=data, schema=FIXTURES_SCHEMA)
    except jsonschema.ValidationError as e:
        location = "/".join(str(part) for part in e.absolute_path) or "<root>"
        raise FixtureValidationError(f"Invalid fixtures at {location}: {e.message}") from e

    return [
        DirectoryEntryExpectation(
            username=entry["username"],
            expected_common_name=entry["common_name"],
            expected_password=entry.get("password"),
        )
        for entry in data["entries"]
    ]


def load_expectations(path: Optional[str] = None) -> List[DirectoryEntryExpectation]:
    """
    Load fixture expectations from ``path``, or return the built-in set.

    Args:
        path: YAML fixtures file; empty or None selects the built-in set

    Raises:
        FixtureLoadError: If the file cannot be read or parsed
        FixtureValidationError: If the content is invalid
    """
    if not path:
        return list(DEFAULT_EXPECTATIONS)

    try:
        data = _read_yaml(path)
    except OSError as e:
        raise FixtureLoadError(f"Cannot read fixtures file {path}: {e}") from e

    if data is None:
        raise FixtureLoadError(f"Fixtures file is empty: {path}")

    expectations = parse_expectations(data)
    logger.info("Loaded %d fixture entries from %s", len(expectations), path)
    return expectations
