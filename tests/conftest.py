"""
Pytest configuration and shared fixtures for ldap-smoke tests.

Nothing here starts a container: commands are answered by FakeExecutor,
which matches on the command line and records every call.
"""

import io
import os
from typing import Callable, List, Optional, Sequence, Tuple
from unittest.mock import patch

import pytest

from ldap_smoke.execution import ExecutionResult
from ldap_smoke.runtime import BackendKind, ExecutionContext


def make_result(exit_code: int = 0, stdout: str = "", stderr: str = "", timed_out: bool = False):
    return ExecutionResult(
        success=exit_code == 0 and not timed_out,
        exit_code=exit_code,
        stdout=stdout,
        stderr=stderr,
        elapsed_ms=1,
        timed_out=timed_out,
    )


class FakeExecutor:
    """
    Stand-in for execute_command.

    Rules are (predicate, result) pairs checked in order; the first
    predicate that accepts the command decides the result. Unmatched
    commands exit 1.
    """

    def __init__(self) -> None:
        self.rules: List[Tuple[Callable[[Sequence[str]], bool], ExecutionResult]] = []
        self.calls: List[dict] = []

    def when(self, predicate: Callable[[Sequence[str]], bool], **result) -> "FakeExecutor":
        self.rules.append((predicate, make_result(**result)))
        return self

    def when_contains(self, *fragments: str, **result) -> "FakeExecutor":
        return self.when(lambda cmd: all(f in cmd for f in fragments), **result)

    def __call__(
        self,
        command: Sequence[str],
        timeout_seconds: Optional[float] = None,
        max_output_size: Optional[int] = None,
        env=None,
    ) -> ExecutionResult:
        self.calls.append(
            {
                "command": list(command),
                "timeout_seconds": timeout_seconds,
                "max_output_size": max_output_size,
            }
        )
        for predicate, result in self.rules:
            if predicate(command):
                return result
        return make_result(exit_code=1, stderr="unexpected command")

    @property
    def commands(self) -> List[List[str]]:
        return [call["command"] for call in self.calls]


@pytest.fixture
def executor():
    """A FakeExecutor with no rules."""
    return FakeExecutor()


@pytest.fixture
def docker_ctx():
    """Context resolved to docker with the plain service name."""
    return ExecutionContext(backend=BackendKind.DOCKER, container_name="openldap")


@pytest.fixture
def unavailable_ctx():
    return ExecutionContext.unavailable()


@pytest.fixture
def client(executor):
    from ldap_smoke.client import LdapSearchClient

    return LdapSearchClient(execute=executor)


@pytest.fixture
def output():
    """Text stream for presenter output."""
    return io.StringIO()


@pytest.fixture
def clean_env():
    """Run with no LDAP_SMOKE_* or NO_COLOR variables set."""
    with patch.dict(os.environ, {}, clear=True):
        yield


@pytest.fixture
def healthy_directory(executor):
    """
    Executor answering like a correctly configured directory.

    LDAPS binds succeed, plain LDAP is refused, every count search finds
    entries and the certificate is present.
    """
    people = (
        "dn: uid=john.doe,ou=people,dc=example,dc=org\n"
        "uid: john.doe\n"
        "cn: John Doe\n"
        "mail: john.doe@example.org\n"
        "\n"
        "dn: uid=jane.smith,ou=people,dc=example,dc=org\n"
        "uid: jane.smith\n"
        "cn: Jane Smith\n"
        "mail: jane.smith@example.org\n"
    )
    executor.when_contains("ldap://localhost:1389", exit_code=49, stderr="ldap_bind: Confidentiality required (13)")
    executor.when_contains("(uid=john.doe)", stdout="dn: uid=john.doe,ou=people,dc=example,dc=org\ncn: John Doe\n")
    executor.when_contains("(uid=jane.smith)", stdout="dn: uid=jane.smith,ou=people,dc=example,dc=org\ncn: Jane Smith\n")
    executor.when_contains("(uid=admin)", stdout="dn: uid=admin,ou=people,dc=example,dc=org\ncn: Admin User\n")
    executor.when_contains("(objectClass=inetOrgPerson)", stdout=people)
    executor.when_contains(
        "(objectClass=groupOfNames)",
        stdout="dn: cn=admins,ou=groups,dc=example,dc=org\ncn: admins\nmember: uid=admin,ou=people,dc=example,dc=org\n",
    )
    executor.when_contains(
        "(objectClass=organizationalUnit)",
        stdout="dn: ou=people,dc=example,dc=org\nou: people\n\ndn: ou=groups,dc=example,dc=org\nou: groups\n",
    )
    executor.when_contains("test", "-f", exit_code=0)
    executor.when_contains(
        "openssl",
        stdout=(
            "Certificate:\n"
            "        Subject: CN = localhost\n"
            "            Not After : Jan  1 00:00:00 2030 GMT\n"
            "                DNS:localhost, IP Address:127.0.0.1\n"
        ),
    )
    executor.when_contains("ldapsearch", "-s", "base", stdout="dn: dc=example,dc=org\n")
    return executor
