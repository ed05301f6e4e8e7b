"""
The fixed smoke-test sequence.

``full_suite`` is a generator: each probe runs only when the consumer asks
for the next item, so results can be printed while later probes are still
pending. The sequence is the same whether or not a runtime was found;
with an unresolved context every probe comes back SKIPPED.
"""

from dataclasses import dataclass
from typing import Iterator, Optional, Sequence, Union

from ..client import LdapSearchClient
from ..config import LDAPS_PORT, LDAPS_URI
from ..runtime import ExecutionContext
from .models import DirectoryEntryExpectation, ProbeResult
from .runner import (
    ALL_GROUPS_QUERY,
    ALL_USERS_QUERY,
    GROUPS_COUNT,
    OUS_COUNT,
    OUS_QUERY,
    USERS_COUNT,
    check_admin_authentication,
    check_certificate,
    check_entry_authentication,
    check_entry_exists,
    check_tls_enforcement,
    run_probe,
)


@dataclass(frozen=True)
class Section:
    """Heading that groups the results that follow it."""

    title: str
    level: int = 2


@dataclass(frozen=True)
class Notice:
    """Informational line that is not a probe result."""

    text: str
    warning: bool = False


SuiteEvent = Union[Section, Notice, ProbeResult]


def setup_validation(
    ctx: ExecutionContext,
    client: Optional[LdapSearchClient] = None,
) -> Iterator[SuiteEvent]:
    """Connection, data import and certificate checks."""
    yield Section("LDAP Configuration Setup & Validation", level=1)

    yield Section("System Configuration")
    if ctx.resolved:
        yield Notice(f"Container Runtime: {ctx.describe()}")
        yield Notice(f"Container: {ctx.container_name}")
    else:
        yield Notice("Skipping LDAP setup (container not running)", warning=True)
    yield Notice(f"LDAPS Port: {LDAPS_PORT} (secure, TLS required)")
    yield Notice("LDAP Port: DISABLED (TLS required)")
    yield Notice(f"External Access: {LDAPS_URI}")

    yield Section("Connection Tests")
    yield from check_tls_enforcement(ctx, client)

    yield Section("Data Import Validation")
    yield run_probe(ctx, USERS_COUNT, client)
    yield run_probe(ctx, GROUPS_COUNT, client)

    yield Section("TLS Certificate Status")
    yield check_certificate(ctx, client)


def functionality_tests(
    ctx: ExecutionContext,
    expectations: Sequence[DirectoryEntryExpectation],
    client: Optional[LdapSearchClient] = None,
) -> Iterator[SuiteEvent]:
    """Organizational units, users, groups and authentication."""
    yield Section("LDAP Functionality Tests", level=1)

    yield Section("Organizational Units")
    yield run_probe(ctx, OUS_QUERY, client)
    yield run_probe(ctx, OUS_COUNT, client)

    yield Section("Individual User Validation")
    for expectation in expectations:
        yield check_entry_exists(ctx, expectation, client)

    yield Section("User Directory Query")
    yield run_probe(ctx, ALL_USERS_QUERY, client)
    yield run_probe(ctx, USERS_COUNT, client)

    yield Section("Group Directory Query")
    yield run_probe(ctx, ALL_GROUPS_QUERY, client)
    yield run_probe(ctx, GROUPS_COUNT, client)

    yield Section("User Authentication Tests")
    for expectation in expectations:
        if expectation.expected_password is not None:
            yield check_entry_authentication(ctx, expectation, client)

    yield Section("Admin Authentication Test")
    yield check_admin_authentication(ctx, client)


def full_suite(
    ctx: ExecutionContext,
    client: Optional[LdapSearchClient] = None,
    expectations: Optional[Sequence[DirectoryEntryExpectation]] = None,
) -> Iterator[SuiteEvent]:
    """
    Every check of a ``test`` run, in order.

    Args:
        ctx: Execution context resolved once for the run
        client: ldapsearch client shared by all probes
        expectations: Fixture entries, the built-in set if omitted
    """
    if expectations is None:
        from ..fixtures import DEFAULT_EXPECTATIONS

        expectations = DEFAULT_EXPECTATIONS

    yield Section("Comprehensive LDAP Test Suite", level=1)
    yield Notice("Running complete test suite including containers and LDAP functionality...")
    yield from setup_validation(ctx, client)
    yield from functionality_tests(ctx, expectations, client)
