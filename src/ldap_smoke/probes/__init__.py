"""
ldap-smoke probes

Probe definitions, the probe runner and the fixed sequence run by
``ldap-smoke test``.
"""

from .models import (
    DirectoryEntryExpectation,
    Outcome,
    ProbeFailed,
    ProbeResult,
    ProbeSpec,
    SecurityRegression,
)
from .runner import (
    check_admin_authentication,
    check_certificate,
    check_entry_authentication,
    check_entry_exists,
    check_tls_enforcement,
    run_probe,
)
from .suite import Notice, Section, full_suite

__all__ = [
    "DirectoryEntryExpectation",
    "Notice",
    "Outcome",
    "ProbeFailed",
    "ProbeResult",
    "ProbeSpec",
    "Section",
    "SecurityRegression",
    "check_admin_authentication",
    "check_certificate",
    "check_entry_authentication",
    "check_entry_exists",
    "check_tls_enforcement",
    "full_suite",
    "run_probe",
]
