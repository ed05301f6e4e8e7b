"""
Probe Runner

Each probe is a plain function of an ExecutionContext and its inputs that
returns a ProbeResult. Probes never raise for directory-side problems:
a failed bind, a missing entry or an absent container all become
outcomes, so one probe can never stop the next one from running.

Classification is done on ldapsearch's ``attribute: value`` lines; only
presence and counts matter.
"""

import logging
import re
from typing import Optional, Tuple

from ..client import LdapSearchClient, SearchRequest, SearchResponse
from ..config import (
    ADMIN_DN,
    ADMIN_PASSWORD,
    BASE_DN,
    CONTAINER_CERT_FILE,
    GROUPS_BASE_DN,
    LDAP_URI,
    LDAPS_URI,
    PEOPLE_BASE_DN,
)
from ..runtime import ExecutionContext
from .models import DirectoryEntryExpectation, Outcome, ProbeResult, ProbeSpec

logger = logging.getLogger(__name__)

UNAVAILABLE_MESSAGE = "service unavailable (container not running)"

USERS_COUNT = ProbeSpec(
    name="Users",
    base_dn=PEOPLE_BASE_DN,
    filter="(objectClass=inetOrgPerson)",
    attributes=("uid",),
    expected_minimum_matches=1,
)
GROUPS_COUNT = ProbeSpec(
    name="Groups",
    base_dn=GROUPS_BASE_DN,
    filter="(objectClass=groupOfNames)",
    attributes=("cn",),
    expected_minimum_matches=1,
)
OUS_COUNT = ProbeSpec(
    name="Organizational units",
    base_dn=BASE_DN,
    filter="(objectClass=organizationalUnit)",
    attributes=("ou",),
    expected_minimum_matches=1,
)

ALL_USERS_QUERY = ProbeSpec(
    name="All users query",
    base_dn=PEOPLE_BASE_DN,
    filter="(objectClass=inetOrgPerson)",
    attributes=("uid", "cn", "mail"),
)
ALL_GROUPS_QUERY = ProbeSpec(
    name="All groups query",
    base_dn=GROUPS_BASE_DN,
    filter="(objectClass=groupOfNames)",
    attributes=("cn", "member"),
)
OUS_QUERY = ProbeSpec(
    name="Organizational units query",
    base_dn=BASE_DN,
    filter="(objectClass=organizationalUnit)",
    attributes=("ou", "description"),
)

SECURE_BIND = ProbeSpec(
    name="LDAPS connection",
    base_dn=BASE_DN,
    filter="(objectClass=*)",
    scope="base",
)
PLAINTEXT_BIND = ProbeSpec(
    name="Plain LDAP connection (should fail)",
    base_dn=BASE_DN,
    filter="(objectClass=*)",
    scope="base",
)
CERTIFICATE = ProbeSpec(
    name="TLS certificate",
    base_dn="",
    filter="",
    show_output=True,
)

_CERT_DETAIL = re.compile(r"Subject:|Not After|DNS:|IP:")


def _skipped(spec: ProbeSpec) -> ProbeResult:
    return ProbeResult(probe=spec, outcome=Outcome.SKIPPED, message=UNAVAILABLE_MESSAGE)


def _client(client: Optional[LdapSearchClient]) -> LdapSearchClient:
    return client if client is not None else LdapSearchClient()


def _exit_message(response: SearchResponse) -> str:
    if response.timed_out:
        return "timed out"
    return f"exit code: {response.exit_code}"


def run_probe(
    ctx: ExecutionContext,
    spec: ProbeSpec,
    client: Optional[LdapSearchClient] = None,
) -> ProbeResult:
    """
    Run one admin bind+search and classify it.

    Args:
        ctx: Execution context; an unresolved context yields SKIPPED
        spec: What to search for and how many attribute lines to expect
        client: ldapsearch client, a default one is created if omitted

    Returns:
        PASS if the search exited 0 and found at least
        ``spec.expected_minimum_matches`` lines of the requested attributes,
        FAIL otherwise
    """
    if not ctx.resolved:
        return _skipped(spec)

    request = SearchRequest(
        base_dn=spec.base_dn,
        filter=spec.filter,
        attributes=spec.attributes,
        scope=spec.scope,
    )
    response = _client(client).search(ctx, request)
    match_count = response.count_attributes(spec.attributes)

    if not response.ok:
        outcome, message = Outcome.FAIL, _exit_message(response)
    elif match_count < spec.expected_minimum_matches:
        outcome = Outcome.FAIL
        message = f"found {match_count}, expected at least {spec.expected_minimum_matches}"
    else:
        outcome = Outcome.PASS
        message = f"found {match_count}" if spec.attributes else ""

    logger.info("Probe %r: %s %s", spec.name, outcome.value, message)
    return ProbeResult(
        probe=spec,
        outcome=outcome,
        match_count=match_count,
        raw_output=response.stdout,
        exit_code=response.exit_code,
        message=message,
        elapsed_ms=response.elapsed_ms,
    )


def check_bind(
    ctx: ExecutionContext,
    name: str,
    bind_dn: str,
    password: str,
    client: Optional[LdapSearchClient] = None,
) -> ProbeResult:
    """Bind as ``bind_dn`` and run a base-scope search; success of the bind is the pass condition."""
    spec = ProbeSpec(name=name, base_dn=BASE_DN, filter="(objectClass=*)", scope="base")
    if not ctx.resolved:
        return _skipped(spec)

    request = SearchRequest(
        base_dn=BASE_DN,
        scope="base",
        bind_dn=bind_dn,
        password=password,
    )
    response = _client(client).search(ctx, request)
    outcome = Outcome.PASS if response.ok else Outcome.FAIL
    return ProbeResult(
        probe=spec,
        outcome=outcome,
        exit_code=response.exit_code,
        message="" if response.ok else _exit_message(response),
        elapsed_ms=response.elapsed_ms,
    )


def check_entry_authentication(
    ctx: ExecutionContext,
    expectation: DirectoryEntryExpectation,
    client: Optional[LdapSearchClient] = None,
) -> ProbeResult:
    """Bind with the entry's own DN and password."""
    if expectation.expected_password is None:
        raise ValueError(f"No password to test for {expectation.username}")
    return check_bind(
        ctx,
        name=f"Auth for {expectation.username}",
        bind_dn=expectation.dn,
        password=expectation.expected_password,
        client=client,
    )


def check_admin_authentication(
    ctx: ExecutionContext,
    client: Optional[LdapSearchClient] = None,
) -> ProbeResult:
    return check_bind(
        ctx,
        name="Auth for admin",
        bind_dn=ADMIN_DN,
        password=ADMIN_PASSWORD,
        client=client,
    )


def check_entry_exists(
    ctx: ExecutionContext,
    expectation: DirectoryEntryExpectation,
    client: Optional[LdapSearchClient] = None,
) -> ProbeResult:
    """
    Look an entry up by uid and compare its common name.

    The comparison is against a whole output line, so ``cn: John Doe Jr.``
    does not satisfy an expectation of ``John Doe``.
    """
    spec = ProbeSpec(
        name=f"User {expectation.username}",
        base_dn=PEOPLE_BASE_DN,
        filter=f"(uid={expectation.username})",
        attributes=("cn",),
        expected_minimum_matches=1,
    )
    if not ctx.resolved:
        return _skipped(spec)

    request = SearchRequest(base_dn=spec.base_dn, filter=spec.filter, attributes=spec.attributes)
    response = _client(client).search(ctx, request)
    match_count = response.count_attributes(spec.attributes)

    if response.ok and response.has_value("cn", expectation.expected_common_name):
        outcome, message = Outcome.PASS, f"found ({expectation.expected_common_name})"
    elif not response.ok:
        outcome, message = Outcome.FAIL, _exit_message(response)
    else:
        outcome, message = Outcome.FAIL, "not found or incorrect"

    return ProbeResult(
        probe=spec,
        outcome=outcome,
        match_count=match_count,
        raw_output=response.stdout,
        exit_code=response.exit_code,
        message=message,
        elapsed_ms=response.elapsed_ms,
    )


def check_tls_enforcement(
    ctx: ExecutionContext,
    client: Optional[LdapSearchClient] = None,
) -> Tuple[ProbeResult, ProbeResult]:
    """
    Bind once over LDAPS and once over plain LDAP with the admin credentials.

    Returns:
        (secure, plaintext). The plaintext result is PASS when the bind was
        refused and SECURITY_REGRESSION when it was accepted.
    """
    if not ctx.resolved:
        return _skipped(SECURE_BIND), _skipped(PLAINTEXT_BIND)

    client = _client(client)

    secure_response = client.search(
        ctx, SearchRequest(base_dn=BASE_DN, scope="base", uri=LDAPS_URI)
    )
    secure = ProbeResult(
        probe=SECURE_BIND,
        outcome=Outcome.PASS if secure_response.ok else Outcome.FAIL,
        exit_code=secure_response.exit_code,
        message="success" if secure_response.ok else _exit_message(secure_response),
        elapsed_ms=secure_response.elapsed_ms,
    )

    plain_response = client.search(
        ctx,
        SearchRequest(base_dn=BASE_DN, scope="base", uri=LDAP_URI, relax_tls=False),
    )
    if plain_response.ok:
        logger.error("Plain LDAP bind on %s succeeded, TLS is not enforced", LDAP_URI)
        plaintext = ProbeResult(
            probe=PLAINTEXT_BIND,
            outcome=Outcome.SECURITY_REGRESSION,
            exit_code=plain_response.exit_code,
            message="plain LDAP succeeded",
            elapsed_ms=plain_response.elapsed_ms,
        )
    else:
        plaintext = ProbeResult(
            probe=PLAINTEXT_BIND,
            outcome=Outcome.PASS,
            exit_code=plain_response.exit_code,
            message="blocked (TLS required)",
            elapsed_ms=plain_response.elapsed_ms,
        )

    return secure, plaintext


def check_certificate(
    ctx: ExecutionContext,
    client: Optional[LdapSearchClient] = None,
) -> ProbeResult:
    """Check the server certificate exists in the container and summarize it."""
    if not ctx.resolved:
        return _skipped(CERTIFICATE)

    client = _client(client)
    exists = client.run(ctx, ["test", "-f", CONTAINER_CERT_FILE])
    if not exists.success:
        # test -f exits 1 for a missing file; anything else means exec failed
        if exists.exit_code == 1 and not exists.timed_out:
            message = "certificate not found in container, check the cert-init container"
        else:
            message = f"certificate check failed ({_exit_message(SearchResponse.from_execution(exists))})"
        return ProbeResult(
            probe=CERTIFICATE,
            outcome=Outcome.FAIL,
            exit_code=exists.exit_code,
            message=message,
        )

    parsed = client.run(
        ctx,
        ["openssl", "x509", "-in", CONTAINER_CERT_FILE, "-text", "-noout"],
        max_output_size=client.max_output_size,
    )
    if not parsed.success:
        return ProbeResult(
            probe=CERTIFICATE,
            outcome=Outcome.PASS,
            exit_code=parsed.exit_code,
            message="certificate found, certificate parsing failed",
        )

    details = [line.strip() for line in parsed.stdout.splitlines() if _CERT_DETAIL.search(line)]
    return ProbeResult(
        probe=CERTIFICATE,
        outcome=Outcome.PASS,
        exit_code=parsed.exit_code,
        raw_output="\n".join(details),
        message="certificate found in container",
        elapsed_ms=exists.elapsed_ms + parsed.elapsed_ms,
    )
