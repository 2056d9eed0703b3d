"""IOC extraction: pull addresses, hashes, domains and URLs out of free text."""

from __future__ import annotations

import re
from collections.abc import Iterable

from .models import IOCMap

# Each category is an independent pass over the whole text, so one token can
# land in several categories (the host of a URL is also reported as a domain).
# ASCII mode keeps \b and \d to plain ASCII word characters and digits.
IOC_PATTERNS: dict[str, re.Pattern[str]] = {
    "ipv4": re.compile(r"\b(?:\d{1,3}\.){3}\d{1,3}\b", re.ASCII),
    "md5": re.compile(r"\b[a-fA-F0-9]{32}\b", re.ASCII),
    "sha1": re.compile(r"\b[a-fA-F0-9]{40}\b", re.ASCII),
    "sha256": re.compile(r"\b[a-fA-F0-9]{64}\b", re.ASCII),
    "domain": re.compile(r"\b(?:[a-zA-Z0-9-]+\.)+[a-zA-Z]{2,}\b", re.ASCII),
    "url": re.compile(r"\bhttps?://[^\s]+", re.ASCII),
}

IOC_CATEGORIES: tuple[str, ...] = tuple(IOC_PATTERNS)


def _unique(values: Iterable[str]) -> list[str]:
    """Deduplicate preserving first-seen order."""
    return list(dict.fromkeys(values))


def extract_iocs(text: str) -> IOCMap:
    """Extract IOCs from *text*, keyed by category.

    Categories without a single match are left out of the result entirely.
    """
    iocs: IOCMap = {}
    for category, pattern in IOC_PATTERNS.items():
        matches = _unique(m.group(0) for m in pattern.finditer(text))
        if matches:
            iocs[category] = matches
    return iocs


def merge_iocs(maps: Iterable[IOCMap | None]) -> IOCMap:
    """Combine many IOC maps into one holding every category.

    Unknown categories are dropped. Values are deduplicated per category.
    """
    combined: dict[str, dict[str, None]] = {c: {} for c in IOC_CATEGORIES}
    for iocs in maps:
        if not iocs:
            continue
        for category, values in iocs.items():
            if category in combined:
                combined[category].update(dict.fromkeys(values))
    return {category: list(values) for category, values in combined.items()}


def has_iocs(iocs: IOCMap | None) -> bool:
    return bool(iocs) and any(iocs.values())
