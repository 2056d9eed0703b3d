"""GitHub search: query building, rate-limit checks, and paginated fetching.

Every search surface (repositories, code, issues) goes through the same
loop in :func:`fetch_all`. Before each page the remaining API budget is
checked; pagination stops on an empty page, a short page, the result cap,
an exhausted budget, or a request failure. Failures never escape the loop:
whatever was collected before the failing request is returned.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Callable
from typing import Any

import requests

from .config import (
    GITHUB_ACCEPT,
    MIN_REMAINING_REQUESTS,
    RATE_LIMIT_URL,
    USER_AGENT,
    Settings,
)
from .extractor import extract_iocs
from .models import CodeRecord, IssueAuthor, IssueRecord, RepositoryRecord, SearchQuery
from .net import describe_error, make_session, polite_get

logger = logging.getLogger(__name__)

# "APT41" -> prefix "APT", number "41"
_ACTOR_RE = re.compile(r"^([A-Za-z]+)[ _-]?(\d+)$")


def github_headers(settings: Settings) -> dict[str, str]:
    headers = {"Accept": GITHUB_ACCEPT, "User-Agent": USER_AGENT}
    if settings.github_token:
        headers["Authorization"] = f"token {settings.github_token}"
    return headers


def make_github_session(settings: Settings) -> requests.Session:
    return make_session(github_headers(settings))


# -- queries ---------------------------------------------------------------


def actor_variants(actor: str) -> list[str]:
    """Spelling variants of a threat-actor name.

    Names shaped like ``APT41`` expand to ``APT41``, ``APT 41``, ``APT-41``
    and ``APT_41``; anything else is used as given.
    """
    actor = actor.strip()
    match = _ACTOR_RE.match(actor)
    if not match:
        return [actor]
    prefix, number = match.groups()
    return [f"{prefix}{number}"] + [f"{prefix}{sep}{number}" for sep in (" ", "-", "_")]


def _quoted_any(actor: str) -> str:
    return "(" + " OR ".join(f'"{v}"' for v in actor_variants(actor)) + ")"


def build_repository_query(actor: str, region: str | None = None) -> str:
    """``("APT41" OR "APT 41" ...) in:name,description India``"""
    parts = [_quoted_any(actor), "in:name,description"]
    if region:
        parts.append(region)
    return " ".join(parts)


def build_code_query(actor: str, region: str | None = None) -> str:
    # Code search does not accept OR groups, so only the compact name is used.
    parts = [actor_variants(actor)[0]]
    if region:
        parts.append(region)
    parts.append("in:file")
    return " ".join(parts)


def build_issue_query(actor: str) -> str:
    """Issue search matches the actor in title and body, with no region term."""
    return f"{_quoted_any(actor)} in:title,body"


# -- rate limit --------------------------------------------------------------


def check_rate_limit(session: requests.Session) -> int:
    """Return the remaining request budget, or 0 if it cannot be determined."""
    try:
        resp = polite_get(session, RATE_LIMIT_URL, delay=0)
        return int(resp.json()["rate"]["remaining"])
    except (requests.RequestException, ValueError, KeyError, TypeError) as exc:
        logger.warning("Error checking rate limit: %s", describe_error(exc))
        return 0


# -- pagination --------------------------------------------------------------


def fetch_page(
    session: requests.Session, query: SearchQuery, page: int
) -> list[dict[str, Any]]:
    """Fetch one page of search results.

    Raises ``requests.RequestException`` on transport or HTTP errors and
    ``ValueError`` when the body is not a search result document.
    """
    resp = polite_get(
        session,
        query.endpoint,
        params={"q": query.q, "per_page": query.per_page, "page": page},
    )
    data = resp.json()
    if not isinstance(data, dict):
        raise ValueError(f"unexpected search response: {type(data).__name__}")

    items = data.get("items") or []
    if not isinstance(items, list) or not all(isinstance(i, dict) for i in items):
        raise ValueError("unexpected search response: items is not a list of objects")
    return items


def fetch_all(
    session: requests.Session,
    query: SearchQuery,
    transform: Callable[[dict[str, Any]], Any],
    progress_callback=None,
    label: str | None = None,
) -> list:
    """Page through *query*, transforming every item, up to ``max_results``."""
    label = label or query.endpoint
    results: list = []
    page = 1

    while len(results) < query.max_results:
        remaining = check_rate_limit(session)
        if remaining < MIN_REMAINING_REQUESTS:
            logger.warning(
                "[%s] Rate limit reached (%d remaining). Stopping fetch.",
                label,
                remaining,
            )
            break

        if progress_callback:
            progress_callback(f"Fetching {label} page {page}...")
        logger.debug("[%s] Fetching page %d", label, page)

        try:
            items = fetch_page(session, query, page)
        except (requests.RequestException, ValueError) as exc:
            logger.error(
                "[%s] Error fetching page %d: %s", label, page, describe_error(exc)
            )
            break

        if not items:
            logger.info("[%s] No more data found.", label)
            break

        results.extend(transform(item) for item in items)

        if len(items) < query.per_page:
            logger.info("[%s] All pages fetched.", label)
            break
        page += 1

    return results[: query.max_results]


# -- item transforms ---------------------------------------------------------


def extract_repo_data(item: dict[str, Any]) -> RepositoryRecord:
    return RepositoryRecord(
        name=item.get("full_name", ""),
        url=item.get("html_url", ""),
        description=item.get("description") or "No description",
        stars=item.get("stargazers_count", 0),
        forks=item.get("forks_count", 0),
        open_issues=item.get("open_issues_count", 0),
        language=item.get("language") or "Not specified",
        created_at=item.get("created_at"),
        updated_at=item.get("updated_at"),
    )


def extract_code_data(item: dict[str, Any], with_iocs: bool = True) -> CodeRecord:
    """Only the file name and path are scanned; search results carry no content."""
    repo = item.get("repository") or {}
    name = item.get("name", "")
    path = item.get("path", "")
    return CodeRecord(
        name=name,
        path=path,
        repository=repo.get("full_name", ""),
        url=item.get("html_url", ""),
        repository_url=repo.get("html_url", ""),
        iocs=extract_iocs(f"{name} {path}") if with_iocs else None,
    )


def extract_issue_data(item: dict[str, Any], with_iocs: bool = True) -> IssueRecord:
    user = item.get("user") or {}
    title = item.get("title") or ""
    body = item.get("body") or ""
    return IssueRecord(
        title=title,
        url=item.get("html_url", ""),
        state=item.get("state", ""),
        comments=item.get("comments", 0),
        created_at=item.get("created_at"),
        updated_at=item.get("updated_at"),
        user=IssueAuthor(
            username=user.get("login"),
            profile_url=user.get("html_url"),
        ),
        iocs=extract_iocs(f"{title}\n{body}") if with_iocs else None,
    )
