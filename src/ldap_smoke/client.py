"""
ldapsearch Client Wrapper

Builds ``ldapsearch`` invocations, runs them inside the service container
and exposes the line-oriented output for classification. Only presence
and counts of ``attribute: value`` lines are needed, so the output is not
parsed into entries.
"""

import base64
import binascii
import logging
from dataclasses import dataclass
from typing import Callable, List, Optional, Sequence, Tuple

from .config import ADMIN_DN, ADMIN_PASSWORD, DEFAULT_FILTER, LDAPS_URI
from .execution import ExecutionResult, execute_command
from .runtime import ExecutionContext

logger = logging.getLogger(__name__)

REDACTED = "[REDACTED]"


class ClientInvocationError(Exception):
    """Raised when the ldapsearch client itself reports an error."""

    def __init__(self, exit_code: int, stderr: str):
        message = stderr.strip() or f"ldapsearch exited with code {exit_code}"
        super().__init__(message)
        self.exit_code = exit_code
        self.stderr = stderr


@dataclass(frozen=True)
class SearchRequest:
    """Arguments of one bind+search operation."""

    base_dn: str
    filter: str = DEFAULT_FILTER
    attributes: Tuple[str, ...] = ()
    scope: Optional[str] = None
    uri: str = LDAPS_URI
    bind_dn: str = ADMIN_DN
    password: str = ADMIN_PASSWORD
    relax_tls: bool = True

    def to_args(self) -> List[str]:
        """ldapsearch argument list for this request."""
        args = ["ldapsearch", "-x", "-H", self.uri]
        if self.relax_tls:
            args += ["-o", "tls_reqcert=never"]
        args += ["-D", self.bind_dn, "-w", self.password, "-b", self.base_dn]
        if self.scope:
            args += ["-s", self.scope]
        args.append(self.filter)
        args.extend(self.attributes)
        return args


@dataclass
class SearchResponse:
    """Raw result of an ldapsearch run."""

    exit_code: int
    stdout: str
    stderr: str
    elapsed_ms: int = 0
    timed_out: bool = False

    @property
    def ok(self) -> bool:
        return self.exit_code == 0 and not self.timed_out

    def lines(self) -> List[str]:
        """Output lines with LDIF continuation lines joined back on."""
        lines: List[str] = []
        for line in self.stdout.splitlines():
            if line.startswith(" ") and lines:
                lines[-1] += line[1:]
            else:
                lines.append(line)
        return lines

    def count_attribute(self, attribute: str) -> int:
        """Number of output lines carrying ``attribute`` (plain or base64)."""
        prefixes = (f"{attribute}:", f"{attribute}::")
        return sum(1 for line in self.lines() if line.startswith(prefixes))

    def count_attributes(self, attributes: Sequence[str]) -> int:
        return sum(self.count_attribute(attribute) for attribute in attributes)

    def has_value(self, attribute: str, value: str) -> bool:
        """
        True if some line is exactly ``attribute: value``.

        Values ldapsearch wrote base64 encoded (``attribute:: ...``) are
        decoded and compared as UTF-8.
        """
        expected = f"{attribute}: {value}"
        encoded_prefix = f"{attribute}:: "
        for line in self.lines():
            if line.rstrip() == expected:
                return True
            if line.startswith(encoded_prefix) and _decode_value(line[len(encoded_prefix):]) == value:
                return True
        return False

    def raise_for_status(self) -> None:
        """
        Raises:
            ClientInvocationError: If the client exited with a non-zero status
        """
        if not self.ok:
            raise ClientInvocationError(self.exit_code, self.stderr)

    @classmethod
    def from_execution(cls, result: ExecutionResult) -> "SearchResponse":
        return cls(
            exit_code=result.exit_code,
            stdout=result.stdout,
            stderr=result.stderr,
            elapsed_ms=result.elapsed_ms,
            timed_out=result.timed_out,
        )


def _decode_value(encoded: str) -> Optional[str]:
    try:
        return base64.b64decode(encoded.strip(), validate=True).decode("utf-8")
    except (binascii.Error, UnicodeDecodeError):
        return None


def redact_command(command: Sequence[str]) -> List[str]:
    """Copy of ``command`` with the value following ``-w`` replaced."""
    redacted = list(command)
    for index, arg in enumerate(redacted[:-1]):
        if arg == "-w":
            redacted[index + 1] = REDACTED
    return redacted


class LdapSearchClient:
    """
    Runs ldapsearch and other helpers inside the service container.

    No timeout is applied to searches: the client's own network defaults
    decide how long a bind may take.
    """

    def __init__(
        self,
        execute: Callable[..., ExecutionResult] = execute_command,
        max_output_size: Optional[int] = 1024 * 1024,
    ):
        self._execute = execute
        self.max_output_size = max_output_size

    def command_for(self, ctx: ExecutionContext, args: Sequence[str]) -> List[str]:
        return ctx.exec_prefix() + list(args)

    def run(
        self,
        ctx: ExecutionContext,
        args: Sequence[str],
        max_output_size: Optional[int] = None,
    ) -> ExecutionResult:
        """Run an arbitrary command inside the service container."""
        command = self.command_for(ctx, args)
        logger.debug("Running: %s", " ".join(redact_command(command)))
        return self._execute(command, max_output_size=max_output_size)

    def search(
        self,
        ctx: ExecutionContext,
        request: SearchRequest,
        limit_output: bool = True,
    ) -> SearchResponse:
        """
        Issue one bind+search.

        Args:
            ctx: Resolved execution context
            request: Search parameters
            limit_output: Apply the output size limit; disable for raw display

        Returns:
            SearchResponse with the client's output and exit status
        """
        result = self.run(
            ctx,
            request.to_args(),
            max_output_size=self.max_output_size if limit_output else None,
        )
        response = SearchResponse.from_execution(result)
        if not response.ok:
            logger.info(
                "ldapsearch on %s (base %s) exited %s: %s",
                request.uri,
                request.base_dn,
                response.exit_code,
                response.stderr.strip(),
            )
        return response
