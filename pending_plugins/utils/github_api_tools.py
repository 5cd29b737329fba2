# Entrius 2025
import logging
import time
from typing import Any, Dict, List, Optional, Tuple

import requests

from pending_plugins.classes import ChangeRequest
from pending_plugins.constants import BASE_GITHUB_API_URL, DEFAULT_PR_LIST_LIMIT, GRAPHQL_PAGE_SIZE

logger = logging.getLogger(__name__)

# =============================================================================
# Rate Limit Configuration
# =============================================================================
RATE_LIMIT_BUFFER_SECONDS = 5  # Extra buffer time when waiting for rate limit reset
RATE_LIMIT_DEFAULT_WAIT_SECONDS = 60  # Used when GitHub gives no reset time
RATE_LIMIT_MAX_WAIT_SECONDS = 900  # Maximum time to wait for rate limit reset (15 min)

GRAPHQL_MAX_ATTEMPTS = 6


def rate_limit_wait_seconds(response: requests.Response) -> Optional[int]:
    """
    Seconds to wait before retrying a rate limited response.

    Returns:
        None if the response is not rate limited
    """
    if response.status_code not in (403, 429):
        return None

    headers = response.headers
    if headers.get('X-RateLimit-Remaining') != '0' and 'rate limit' not in response.text.lower():
        return None

    retry_after = str(headers.get('Retry-After', ''))
    if retry_after.isdigit():
        return min(int(retry_after) + RATE_LIMIT_BUFFER_SECONDS, RATE_LIMIT_MAX_WAIT_SECONDS)

    try:
        reset_timestamp = int(headers.get('X-RateLimit-Reset', 0))
    except (TypeError, ValueError):
        reset_timestamp = 0
    if not reset_timestamp:
        return RATE_LIMIT_DEFAULT_WAIT_SECONDS

    wait_seconds = max(0, reset_timestamp - int(time.time())) + RATE_LIMIT_BUFFER_SECONDS
    return min(wait_seconds, RATE_LIMIT_MAX_WAIT_SECONDS)


# open PR search, one page at a time
SEARCH_QUERY = """
    query($searchQuery: String!, $limit: Int!, $cursor: String) {
      search(query: $searchQuery, type: ISSUE, first: $limit, after: $cursor) {
        issueCount
        pageInfo {
          hasNextPage
          endCursor
        }
        nodes {
          ... on PullRequest {
            number
            title
            author {
              login
            }
          }
        }
      }
    }
    """


def build_search_query(repository: str, search: str) -> str:
    """GitHub search string for open PRs of ``repository`` matching ``search``."""
    return f"repo:{repository} is:pr is:open {search}".strip()


def get_github_graphql_query(
    token: str, query: str, variables: Dict[str, Any], context: str = "GraphQL query"
) -> Optional[requests.Response]:
    """
    Execute a GraphQL query with retry, exponential backoff and rate limit handling.

    Args:
        token (str): GitHub PAT
        query (str): GraphQL document
        variables (Dict[str, Any]): Query variables
        context (str): Label used in log messages

    Returns:
        Optional[requests.Response]: Response object from the GraphQL query or None if errors occurred
    """
    attempts = GRAPHQL_MAX_ATTEMPTS
    headers = {'Authorization': f'Bearer {token}', 'Content-Type': 'application/json'}

    for attempt in range(attempts):
        try:
            response = requests.post(
                f'{BASE_GITHUB_API_URL}/graphql',
                headers=headers,
                json={"query": query, "variables": variables},
                timeout=30,
            )

            wait_seconds = rate_limit_wait_seconds(response)
            if wait_seconds is not None:
                if attempt < (attempts - 1):
                    logger.warning(f"GitHub API rate limit exceeded for {context}. Waiting {wait_seconds}s for reset...")
                    time.sleep(wait_seconds)
                    continue
                else:
                    logger.error(f"Rate limit exceeded on final attempt for {context}")
                    return None

            if response.status_code == 200:
                return response
            elif attempt < (attempts - 1):
                # Exponential backoff: 5s, 10s, 20s, 40s, 80s
                backoff_delay = 5 * (2**attempt)
                logger.warning(
                    f"{context} failed with status {response.status_code} "
                    f"(attempt {attempt + 1}/{attempts}), retrying in {backoff_delay}s..."
                )
                time.sleep(backoff_delay)
            else:
                logger.error(
                    f"{context} failed with status {response.status_code} after {attempts} attempts: {response.text}"
                )

        except requests.exceptions.RequestException as e:
            if attempt < (attempts - 1):
                backoff_delay = 5 * (2**attempt)
                logger.warning(
                    f"{context} connection error (attempt {attempt + 1}/{attempts}): {e}, retrying in {backoff_delay}s..."
                )
                time.sleep(backoff_delay)
            else:
                logger.error(f"{context} failed after {attempts} attempts: {e}")
                return None

    return None


def parse_pull_request_node(node: Dict[str, Any]) -> Optional[Tuple[int, str, str]]:
    """Return (number, author login, title) from a search node, or None for non-PR nodes."""
    number = node.get('number')
    if not isinstance(number, int):
        return None
    author = node.get('author') or {}
    return number, author.get('login') or '', node.get('title') or ''


def list_open_change_requests(
    repository: str, token: str, search: str = "", limit: int = DEFAULT_PR_LIST_LIMIT
) -> Optional[List[ChangeRequest]]:
    """
    List open PRs of a repository matching a search filter.

    PRs are sorted by number and ``discovery_order`` is assigned from that
    order, so the listing is stable across runs.

    Args:
        repository (str): Repository in format 'owner/repo'
        token (str): GitHub PAT
        search (str): Extra search terms (e.g. "community-plugins in:path")
        limit (int): Maximum number of PRs to return

    Returns:
        Optional[List[ChangeRequest]]: The PRs, or None if the listing could not be fetched
    """
    search_query = build_search_query(repository, search)
    logger.info(f"Searching open PRs: {search_query}")

    found: Dict[int, Tuple[int, str, str]] = {}
    cursor = None

    while len(found) < limit:
        variables = {
            "searchQuery": search_query,
            "limit": min(GRAPHQL_PAGE_SIZE, limit - len(found)),
            "cursor": cursor,
        }
        response = get_github_graphql_query(token, SEARCH_QUERY, variables, context="PR search")
        if response is None:
            return None

        try:
            data = response.json()
        except ValueError as e:
            logger.error(f"Failed to parse PR search response: {e}")
            return None

        if 'errors' in data:
            logger.error(f"GraphQL errors: {data['errors']}")
            return None

        search_data = (data.get('data') or {}).get('search') or {}
        nodes = search_data.get('nodes') or []
        page_info = search_data.get('pageInfo') or {}

        for node in nodes:
            parsed = parse_pull_request_node(node or {})
            if parsed is not None:
                found.setdefault(parsed[0], parsed)

        if not page_info.get('hasNextPage') or len(nodes) == 0:
            break
        cursor = page_info.get('endCursor')

    ordered = sorted(found.values())[:limit]
    change_requests = [
        ChangeRequest(number=number, owner_login=login, title=title, discovery_order=position)
        for position, (number, login, title) in enumerate(ordered)
    ]
    logger.info(f"Found {len(change_requests)} open PRs in {repository}")
    return change_requests
