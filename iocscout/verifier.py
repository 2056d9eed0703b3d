"""IOC verification against AlienVault OTX.

An indicator counts as verified when OTX reports at least one pulse
referencing it. Lookups run one at a time and each one resolves to a plain
boolean: not-found, HTTP errors, timeouts and malformed bodies all mean
"unverified", and never stop the remaining lookups.
"""

from __future__ import annotations

import logging
from urllib.parse import quote

import requests

from .config import OTX_API_URL, OTX_REQUEST_DELAY, USER_AGENT, Settings
from .extractor import IOC_CATEGORIES
from .models import IOCMap
from .net import describe_error, make_session, polite_get

logger = logging.getLogger(__name__)

# Our category -> OTX indicator section
OTX_SECTIONS = {
    "ipv4": "IPv4",
    "md5": "file",
    "sha1": "file",
    "sha256": "file",
    "domain": "domain",
    "url": "url",
}


def otx_headers(settings: Settings) -> dict[str, str]:
    headers = {"User-Agent": USER_AGENT}
    if settings.otx_api_key:
        headers["X-OTX-API-KEY"] = settings.otx_api_key
    return headers


def make_otx_session(settings: Settings) -> requests.Session:
    return make_session(otx_headers(settings))


def verify_ioc(session: requests.Session, value: str, category: str) -> bool:
    """Return True if OTX has at least one pulse for *value*."""
    section = OTX_SECTIONS.get(category)
    if section is None:
        logger.warning("Cannot verify IOC %s: unknown type %r", value, category)
        return False

    # "?", "#" and "%" in URL indicators must stay inside the path segment
    url = f"{OTX_API_URL}/indicators/{section}/{quote(value, safe=':/')}/general"
    try:
        resp = polite_get(session, url, delay=OTX_REQUEST_DELAY)
        return int(resp.json()["pulse_info"]["count"]) > 0
    except requests.HTTPError as exc:
        if exc.response is not None and exc.response.status_code == 404:
            logger.info("IOC not found in OTX: %s (%s)", value, category)
        else:
            logger.error(
                "Error verifying IOC %s (%s): %s", value, category, describe_error(exc)
            )
        return False
    except (requests.RequestException, ValueError, KeyError, TypeError) as exc:
        logger.error("Error verifying IOC %s (%s): %s", value, category, describe_error(exc))
        return False


def filter_verified(
    iocs: IOCMap,
    session: requests.Session,
    progress_callback=None,
) -> IOCMap:
    """Keep only the indicators OTX knows about.

    Every known category is present in the result, possibly empty. Input
    order is preserved within each category.
    """
    verified: IOCMap = {category: [] for category in IOC_CATEGORIES}
    total = sum(len(v) for c, v in iocs.items() if c in verified)
    checked = 0

    for category, values in iocs.items():
        if category not in verified:
            continue
        for value in values:
            checked += 1
            if progress_callback:
                progress_callback(f"Verifying IOC {checked}/{total}: {value}")
            if verify_ioc(session, value, category):
                verified[category].append(value)

    return verified
