"""
Container Runtime Detection

Finds the container backend that is running the directory service. The
smoke tests never talk to the directory over the network from the host;
every command is run inside the service container through
``<backend> exec``, so the first thing a run needs is to know which
backend that is.

Candidates are tried in a fixed preference order:

- podman (rootless-capable, preferred when present)
- docker
- colima, a VM shim that is driven through the docker client

The first candidate whose client is installed and which lists a running
container matching the service name wins. Later candidates are not
checked.
"""

import logging
import shutil
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

from .config import SERVICE_NAME
from .execution import ExecutionResult, execute_command

logger = logging.getLogger(__name__)


class BackendKind(Enum):
    """Container clients the smoke tester knows how to drive."""

    PODMAN = "podman"
    DOCKER = "docker"


@dataclass(frozen=True)
class ExecutionContext:
    """
    Where probe commands are run.

    Resolved once per invocation and passed explicitly to every probe.
    ``backend`` is only set when a container matching ``service_name`` was
    seen running under that backend; an unresolved context means the
    service is unavailable.
    """

    backend: Optional[BackendKind]
    service_name: str = SERVICE_NAME
    container_name: Optional[str] = None
    via: Optional[str] = None

    @property
    def resolved(self) -> bool:
        return self.backend is not None

    @property
    def command(self) -> str:
        """Name of the container client binary."""
        if self.backend is None:
            raise NoRuntimeFound(f"No container runtime is running '{self.service_name}'")
        return self.backend.value

    def exec_prefix(self) -> List[str]:
        """Command prefix that runs a program inside the service container."""
        return [self.command, "exec", self.container_name or self.service_name]

    def describe(self) -> str:
        if self.backend is None:
            return "unavailable"
        if self.via:
            return f"{self.backend.value} (via {self.via})"
        return self.backend.value

    @classmethod
    def unavailable(cls, service_name: str = SERVICE_NAME) -> "ExecutionContext":
        return cls(backend=None, service_name=service_name)


@dataclass(frozen=True)
class BackendCandidate:
    """One way of reaching a container backend."""

    name: str
    kind: BackendKind
    shim: Optional[str] = None

    @property
    def client(self) -> str:
        return self.kind.value


@dataclass
class BackendStatus:
    """
    Outcome of checking one candidate backend.

    Kept for diagnostics: when nothing matches, the statuses explain why
    each candidate was rejected.
    """

    name: str
    available: bool
    error: Optional[str] = None
    container_name: Optional[str] = None
    details: Dict[str, Any] = field(default_factory=dict)
    suggestion: Optional[str] = None


class NoRuntimeFound(Exception):
    """Raised when no backend is running the directory service."""

    def __init__(self, message: str, statuses: Sequence[BackendStatus] = ()):
        super().__init__(message)
        self.statuses = list(statuses)


DEFAULT_CANDIDATES: Tuple[BackendCandidate, ...] = (
    BackendCandidate(name="podman", kind=BackendKind.PODMAN),
    BackendCandidate(name="docker", kind=BackendKind.DOCKER),
    BackendCandidate(name="colima", kind=BackendKind.DOCKER, shim="colima"),
)


def match_service(names_output: str, service_name: str) -> Optional[str]:
    """
    Pick the running container that hosts the service.

    An exact name wins; otherwise the first listed name containing the
    service name is used, which covers compose prefixes such as
    ``ldap-openldap-1``.

    Args:
        names_output: Output of ``ps --format {{.Names}}``, one name per line
        service_name: Expected service name

    Returns:
        The matching container name, or None
    """
    names = [line.strip() for line in names_output.splitlines() if line.strip()]
    if service_name in names:
        return service_name
    for name in names:
        if service_name in name:
            return name
    return None


class RuntimeLocator:
    """
    Resolves the ExecutionContext for a run.

    The executor and PATH lookup are injectable so the detection order can
    be exercised without any container tooling installed.
    """

    def __init__(
        self,
        service_name: str = SERVICE_NAME,
        candidates: Sequence[BackendCandidate] = DEFAULT_CANDIDATES,
        execute: Callable[..., ExecutionResult] = execute_command,
        which: Callable[[str], Optional[str]] = shutil.which,
        timeout_seconds: float = 10,
    ):
        self.service_name = service_name
        self.candidates = tuple(candidates)
        self._execute = execute
        self._which = which
        self.timeout_seconds = timeout_seconds

    def resolve(self) -> ExecutionContext:
        """
        Return the context for the first candidate running the service.

        Raises:
            NoRuntimeFound: If no candidate lists a matching container
        """
        statuses: List[BackendStatus] = []

        for candidate in self.candidates:
            status = self.check_candidate(candidate)
            statuses.append(status)

            if status.available:
                context = ExecutionContext(
                    backend=candidate.kind,
                    service_name=self.service_name,
                    container_name=status.container_name,
                    via=candidate.shim,
                )
                logger.info(
                    "Resolved container runtime %s, container %s",
                    context.describe(),
                    context.container_name,
                )
                return context

            logger.debug("Runtime candidate %s rejected: %s", candidate.name, status.error)

        raise NoRuntimeFound(
            f"No container runtime is running '{self.service_name}'", statuses
        )

    def resolve_or_unavailable(self) -> ExecutionContext:
        """Like resolve(), but return an unresolved context instead of raising."""
        try:
            return self.resolve()
        except NoRuntimeFound as e:
            logger.warning("%s", e)
            for status in e.statuses:
                logger.info("  %s: %s", status.name, status.error)
            return ExecutionContext.unavailable(self.service_name)

    def check_candidate(self, candidate: BackendCandidate) -> BackendStatus:
        """
        Check whether a single candidate is running the service.

        Args:
            candidate: Backend candidate to check

        Returns:
            BackendStatus describing the result
        """
        for binary in filter(None, (candidate.shim, candidate.client)):
            if not self._which(binary):
                return BackendStatus(
                    name=candidate.name,
                    available=False,
                    error=f"{binary} not installed",
                    details={"command": binary},
                    suggestion=f"Install {binary} or use another container runtime",
                )

        if candidate.shim:
            result = self._execute(
                [candidate.shim, "status"], timeout_seconds=self.timeout_seconds
            )
            if not result.success:
                return BackendStatus(
                    name=candidate.name,
                    available=False,
                    error=f"{candidate.shim} is not running",
                    details={"exit_code": result.exit_code, "stderr": result.stderr.strip()},
                    suggestion=f"Start it with '{candidate.shim} start'",
                )

        result = self._execute(
            [candidate.client, "ps", "--format", "{{.Names}}"],
            timeout_seconds=self.timeout_seconds,
        )
        if not result.success:
            error = result.stderr.strip() or f"{candidate.client} ps failed"
            return BackendStatus(
                name=candidate.name,
                available=False,
                error=error,
                details={"exit_code": result.exit_code, "timed_out": result.timed_out},
                suggestion=f"Ensure the {candidate.client} daemon or service is reachable",
            )

        container_name = match_service(result.stdout, self.service_name)
        if container_name is None:
            return BackendStatus(
                name=candidate.name,
                available=False,
                error=f"no running container matches '{self.service_name}'",
                details={"running": result.stdout.split()},
                suggestion="Start the containers with 'docker-compose up -d'",
            )

        return BackendStatus(
            name=candidate.name,
            available=True,
            container_name=container_name,
        )
