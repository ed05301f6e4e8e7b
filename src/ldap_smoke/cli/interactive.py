"""
Interactive Query Mode

Prompts for one search, runs it with the fixed admin credentials and
prints the client's output untouched. The filter is passed through as
typed; ldapsearch reports syntax errors itself.
"""

import logging
from typing import Callable, Optional

from ..client import ClientInvocationError, LdapSearchClient, SearchRequest
from ..config import BASE_DN, DEFAULT_FILTER
from ..report import Presenter
from ..runtime import ExecutionContext

logger = logging.getLogger(__name__)

FILTER_EXAMPLES = (
    ("(objectClass=*)", "All entries"),
    ("(objectClass=inetOrgPerson)", "All users"),
    ("(objectClass=groupOfNames)", "All groups"),
    ("(uid=john.doe)", "Specific user"),
    ("(cn=John*)", "Users by name"),
    ("(mail=*@example.org)", "Users with email"),
    (f"(member=uid=john.doe,ou=people,{BASE_DN})", "Group membership"),
    ("(&(objectClass=inetOrgPerson)(cn=*admin*))", "Multiple conditions"),
    ("(|(uid=john.doe)(uid=jane.smith))", "OR conditions"),
    ("(&(objectClass=*)(!(objectClass=organizationalUnit)))", "NOT conditions"),
)

BASE_DN_EXAMPLES = (
    (BASE_DN, "Search entire directory"),
    (f"ou=people,{BASE_DN}", "Search only users"),
    (f"ou=groups,{BASE_DN}", "Search only groups"),
)

ATTRIBUTE_EXAMPLES = (
    ("dn cn uid mail", "Basic user info"),
    ("cn member description", "Group info"),
    ("objectClass", "Entry types"),
    ("*", "All attributes, same as leaving it blank"),
)


def _ask(input_func: Callable[[str], str], prompt: str) -> str:
    try:
        return input_func(prompt).strip()
    except EOFError:
        return ""


def print_examples(presenter: Presenter) -> None:
    presenter.info("Common search filters:")
    for example, label in FILTER_EXAMPLES:
        presenter.item(example, label)
    presenter.info("Base DN examples:")
    for example, label in BASE_DN_EXAMPLES:
        presenter.item(example, label)
    presenter.info("Attributes (space-separated, leave empty for all):")
    for example, label in ATTRIBUTE_EXAMPLES:
        presenter.item(example, label)
    presenter.raw("\n")


def prompt_request(input_func: Callable[[str], str] = input) -> SearchRequest:
    """Ask for base DN, filter and attributes; blank answers take the defaults."""
    base_dn = _ask(input_func, f"Enter base DN [{BASE_DN}]: ") or BASE_DN
    search_filter = _ask(input_func, f"Enter search filter [{DEFAULT_FILTER}]: ") or DEFAULT_FILTER
    attributes = tuple(_ask(input_func, "Enter attributes to return [all]: ").split())
    return SearchRequest(base_dn=base_dn, filter=search_filter, attributes=attributes)


def run_interactive_search(
    ctx: ExecutionContext,
    client: Optional[LdapSearchClient] = None,
    presenter: Optional[Presenter] = None,
    input_func: Callable[[str], str] = input,
) -> int:
    """
    Run one interactively specified search.

    Returns:
        The ldapsearch exit status, or 1 when no runtime is running the service
    """
    presenter = presenter or Presenter()
    client = client or LdapSearchClient()

    presenter.header("Interactive LDAP Search")

    if not ctx.resolved:
        presenter.warning("Cannot search: LDAP container is not running")
        presenter.info("Start the containers with 'docker-compose up -d' and try again")
        return 1

    print_examples(presenter)
    request = prompt_request(input_func)

    presenter.info(
        f"Searching {request.base_dn} for {request.filter}"
        + (f" ({' '.join(request.attributes)})" if request.attributes else "")
    )
    logger.info("Interactive search: base=%s filter=%s", request.base_dn, request.filter)

    response = client.search(ctx, request, limit_output=False)

    presenter.rule()
    presenter.raw(response.stdout)
    presenter.raw(response.stderr)
    presenter.rule()

    try:
        response.raise_for_status()
    except ClientInvocationError as e:
        presenter.error(f"Search failed (exit code: {e.exit_code})")
        return e.exit_code

    presenter.success("Search completed")
    return 0
