"""Probe definitions, results and fixture expectations."""

from dataclasses import asdict, dataclass
from enum import Enum
from typing import Any, Dict, Optional, Tuple

from ..config import PEOPLE_BASE_DN


class Outcome(Enum):
    """Classification of a single probe run."""

    PASS = "pass"
    FAIL = "fail"
    SKIPPED = "skipped"
    SECURITY_REGRESSION = "security_regression"


class ProbeFailed(Exception):
    """A probe ran but did not meet its pass condition."""

    def __init__(self, result: "ProbeResult"):
        super().__init__(f"{result.probe.name}: {result.message or 'failed'}")
        self.result = result


class SecurityRegression(ProbeFailed):
    """The plaintext endpoint accepted a bind it should have refused."""


@dataclass(frozen=True)
class ProbeSpec:
    name: str
    base_dn: str
    filter: str
    attributes: Tuple[str, ...] = ()
    expected_minimum_matches: int = 0
    scope: Optional[str] = None
    # Print raw_output under the result line
    show_output: bool = False


@dataclass
class ProbeResult:
    probe: ProbeSpec
    outcome: Outcome
    match_count: Optional[int] = None
    raw_output: Optional[str] = None
    exit_code: Optional[int] = None
    message: str = ""
    elapsed_ms: int = 0

    @property
    def passed(self) -> bool:
        return self.outcome is Outcome.PASS

    def raise_for_outcome(self) -> None:
        """
        Raises:
            SecurityRegression: For a SECURITY_REGRESSION outcome
            ProbeFailed: For a FAIL outcome
        """
        if self.outcome is Outcome.SECURITY_REGRESSION:
            raise SecurityRegression(self)
        if self.outcome is Outcome.FAIL:
            raise ProbeFailed(self)

    def to_dict(self) -> Dict[str, Any]:
        d = asdict(self)
        d["outcome"] = self.outcome.value
        d["probe"]["attributes"] = list(self.probe.attributes)
        return d


@dataclass(frozen=True)
class DirectoryEntryExpectation:
    """An entry the directory should contain after initialization."""

    username: str
    expected_common_name: str
    expected_password: Optional[str] = None

    @property
    def dn(self) -> str:
        return f"uid={self.username},{PEOPLE_BASE_DN}"
