"""
Report Presenter

Prints probe results as they are produced, one line per result with a
pass/fail/warn marker. The presenter never decides the exit code; it
only tallies outcomes for the caller.
"""

import sys
from collections import Counter
from dataclasses import dataclass, field
from typing import Iterable, Optional, TextIO

from .config import LDAPS_PORT
from .probes.models import Outcome, ProbeResult
from .probes.suite import Notice, Section, SuiteEvent


class Colors:
    RED = "\033[0;31m"
    GREEN = "\033[0;32m"
    YELLOW = "\033[1;33m"
    BLUE = "\033[0;34m"
    CYAN = "\033[0;36m"
    BOLD = "\033[1m"
    RESET = "\033[0m"


MARKERS = {
    Outcome.PASS: ("✅", Colors.GREEN),
    Outcome.FAIL: ("❌", Colors.RED),
    Outcome.SKIPPED: ("⚠️ ", Colors.YELLOW),
    Outcome.SECURITY_REGRESSION: ("🚨", Colors.RED + Colors.BOLD),
}


@dataclass
class RunSummary:
    """Tally of outcomes for one run."""

    counts: Counter = field(default_factory=Counter)

    def add(self, result: ProbeResult) -> None:
        self.counts[result.outcome] += 1

    @property
    def total(self) -> int:
        return sum(self.counts.values())

    @property
    def has_failures(self) -> bool:
        return bool(self.counts[Outcome.FAIL] or self.counts[Outcome.SECURITY_REGRESSION])


class Presenter:
    """Writes colored status lines to a text stream."""

    def __init__(self, stream: Optional[TextIO] = None, color: Optional[bool] = None):
        self.stream = stream if stream is not None else sys.stdout
        if color is None:
            color = hasattr(self.stream, "isatty") and self.stream.isatty()
        self.color = color

    def _paint(self, text: str, *codes: str) -> str:
        if not self.color or not codes:
            return text
        return "".join(codes) + text + Colors.RESET

    def _write(self, line: str = "") -> None:
        self.stream.write(line + "\n")
        self.stream.flush()

    def header(self, title: str) -> None:
        self._write()
        self._write(self._paint(f"🔹 {title}", Colors.BOLD, Colors.CYAN))
        self._write(self._paint("━" * 60, Colors.CYAN))

    def subheader(self, title: str) -> None:
        self._write()
        self._write(self._paint(f"▶ {title}", Colors.BOLD, Colors.BLUE))
        self._write(self._paint("─" * 40, Colors.BLUE))

    def success(self, message: str) -> None:
        self._write(self._paint(f"  ✅ {message}", Colors.GREEN))

    def error(self, message: str) -> None:
        self._write(self._paint(f"  ❌ {message}", Colors.RED))

    def warning(self, message: str) -> None:
        self._write(self._paint(f"  ⚠️  {message}", Colors.YELLOW))

    def info(self, message: str) -> None:
        self._write(self._paint(f"  ℹ️  {message}", Colors.BLUE))

    def item(self, value: str, label: str) -> None:
        self._write(f"    {self._paint(value, Colors.GREEN)} - {label}")

    def rule(self) -> None:
        self._write(self._paint("  " + "━" * 72, Colors.CYAN))

    def raw(self, text: str) -> None:
        """Write text exactly as given."""
        self.stream.write(text)
        self.stream.flush()

    def format_result(self, result: ProbeResult) -> str:
        marker, color = MARKERS[result.outcome]
        if result.outcome is Outcome.SECURITY_REGRESSION:
            status = f"SECURITY ISSUE ({result.message})"
        elif result.outcome is Outcome.SKIPPED:
            status = f"SKIPPED ({result.message})" if result.message else "SKIPPED"
        elif result.outcome is Outcome.PASS:
            status = result.message or "OK"
        else:
            status = f"FAILED ({result.message})" if result.message else "FAILED"
        return f"  {result.probe.name}: " + self._paint(f"{marker} {status}", color)

    def result(self, result: ProbeResult) -> None:
        self._write(self.format_result(result))
        if result.probe.show_output and result.raw_output:
            for line in result.raw_output.splitlines():
                self._write(f"    {line}")

    def present(self, events: Iterable[SuiteEvent]) -> RunSummary:
        """
        Print each event as it arrives and return the outcome tally.

        ``events`` is consumed exactly once; probes behind a lazy sequence
        run one at a time as this loop pulls them.
        """
        summary = RunSummary()

        for event in events:
            if isinstance(event, Section):
                if event.level == 1:
                    self.header(event.title)
                else:
                    self.subheader(event.title)
            elif isinstance(event, Notice):
                if event.warning:
                    self.warning(event.text)
                else:
                    self.info(event.text)
            else:
                summary.add(event)
                self.result(event)

        self._write()
        self._write(
            "  Results: "
            + ", ".join(
                f"{summary.counts[outcome]} {outcome.value.replace('_', ' ')}"
                for outcome in Outcome
            )
        )
        self._write()
        self._write(
            self._paint("✅ All LDAP functionality tests completed", Colors.GREEN)
        )
        return summary

    def usage(self, prog: str = "ldap-smoke") -> None:
        """Print the command overview."""
        self._write()
        self._write(self._paint("┌─────────────────────────────────────────┐", Colors.BOLD, Colors.CYAN))
        self._write(self._paint("│           LDAP Testing Suite            │", Colors.BOLD, Colors.CYAN))
        self._write(self._paint("└─────────────────────────────────────────┘", Colors.BOLD, Colors.CYAN))
        self._write()
        self._write(self._paint("Usage:", Colors.BOLD) + f" {prog} {{test|search}} [--strict] [--no-color]")
        self._write()
        self._write(self._paint("📋 Available Commands:", Colors.BOLD, Colors.YELLOW))
        self._write("  " + self._paint("test", Colors.GREEN) + "        Run complete test suite (setup + all LDAP tests)")
        self._write("  " + self._paint("search", Colors.GREEN) + "      Interactive LDAP search")
        self._write()
        self._write(self._paint("💡 Examples:", Colors.BOLD, Colors.CYAN))
        self._write("  " + self._paint(f"{prog} test", Colors.BLUE))
        self._write("  " + self._paint(f"{prog} test --strict", Colors.BLUE) + "   exit 1 if any check failed")
        self._write("  " + self._paint(f"{prog} search", Colors.BLUE))
        self._write()
        self._write(self._paint("🔒 TLS Configuration:", Colors.BOLD, Colors.YELLOW))
        self._write(f"  • LDAPS ONLY - TLS required for all connections (port {LDAPS_PORT})")
        self._write("  • Plain LDAP disabled for security")
        self._write("  • Certificates managed externally (Docker Compose init container)")
        self._write()
        self._write(self._paint("🚀 Setup Instructions:", Colors.BOLD, Colors.YELLOW))
        self._write(
            "  " + self._paint("1.", Colors.CYAN) + " Start containers: "
            + self._paint("docker-compose up -d", Colors.BLUE)
            + " (or " + self._paint("podman-compose up -d", Colors.BLUE) + ")"
        )
        self._write("  " + self._paint("2.", Colors.CYAN) + " Run tests: " + self._paint(f"{prog} test", Colors.BLUE))
        self._write("  " + self._paint("3.", Colors.CYAN) + " For custom queries: " + self._paint(f"{prog} search", Colors.BLUE))
        self._write()
