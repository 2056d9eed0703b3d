"""Scan pipeline: wire GitHub search to IOC extraction, verification and output."""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from functools import partial
from pathlib import Path
from typing import Any

import requests

from .config import (
    CODE_FILE,
    CODE_SEARCH_URL,
    DATA_DIR,
    EXTRACTED_IOCS_FILE,
    ISSUE_SEARCH_URL,
    ISSUES_FILE,
    MAX_RESULTS,
    PER_PAGE,
    REPO_SEARCH_URL,
    REPOS_FILE,
    VERIFIED_IOCS_FILE,
    Settings,
)
from .extractor import has_iocs, merge_iocs
from .github import (
    build_code_query,
    build_issue_query,
    build_repository_query,
    extract_code_data,
    extract_issue_data,
    extract_repo_data,
    fetch_all,
    make_github_session,
)
from .models import RunSummary, SearchQuery, SurfaceResult
from .output import save_iocs, save_records
from .verifier import filter_verified, make_otx_session

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Surface:
    """One search surface and how its results are turned into records."""

    name: str  # "repositories", "code" or "issues"
    query: SearchQuery
    output: str  # file name inside the output directory
    transform: Callable[[dict[str, Any]], Any]
    extracts_iocs: bool = False


def build_surfaces(
    actor: str,
    region: str | None = None,
    per_page: int = PER_PAGE,
    max_results: int = MAX_RESULTS,
    extract: bool = True,
) -> list[Surface]:
    """Repositories, code and issues, in the order they are searched."""

    def query(endpoint: str, q: str) -> SearchQuery:
        return SearchQuery(endpoint=endpoint, q=q, per_page=per_page, max_results=max_results)

    return [
        Surface(
            name="repositories",
            query=query(REPO_SEARCH_URL, build_repository_query(actor, region)),
            output=REPOS_FILE,
            transform=extract_repo_data,
        ),
        Surface(
            name="code",
            query=query(CODE_SEARCH_URL, build_code_query(actor, region)),
            output=CODE_FILE,
            transform=partial(extract_code_data, with_iocs=extract),
            extracts_iocs=extract,
        ),
        Surface(
            name="issues",
            query=query(ISSUE_SEARCH_URL, build_issue_query(actor)),
            output=ISSUES_FILE,
            transform=partial(extract_issue_data, with_iocs=extract),
            extracts_iocs=extract,
        ),
    ]


def run_surface(
    session: requests.Session,
    surface: Surface,
    output_dir: Path,
    progress_callback=None,
) -> SurfaceResult:
    """Fetch one surface and save its records."""
    logger.info("Searching GitHub %s: %s", surface.name, surface.query.q)
    records = fetch_all(
        session,
        surface.query,
        surface.transform,
        progress_callback=progress_callback,
        label=surface.name,
    )
    path = save_records(Path(output_dir) / surface.output, records)
    return SurfaceResult(surface=surface.name, records=records, output_path=path)


def run(
    settings: Settings,
    actor: str,
    region: str | None = None,
    output_dir: Path = DATA_DIR,
    verify: bool = False,
    extract: bool = True,
    per_page: int = PER_PAGE,
    max_results: int = MAX_RESULTS,
    progress_callback=None,
) -> RunSummary:
    """Search every surface for *actor* and write all result files.

    Surfaces run one after another; an empty or partial result on one never
    stops the next. File write errors propagate.
    """
    output_dir = Path(output_dir)
    summary = RunSummary(actor=actor)
    surfaces = build_surfaces(
        actor, region=region, per_page=per_page, max_results=max_results, extract=extract
    )

    with make_github_session(settings) as session:
        for surface in surfaces:
            result = run_surface(session, surface, output_dir, progress_callback)
            summary.surfaces.append(result)
            summary.written.append(result.output_path)

    if not extract:
        return summary

    extracted = merge_iocs(
        record.iocs
        for result, surface in zip(summary.surfaces, surfaces)
        if surface.extracts_iocs
        for record in result.records
    )
    summary.extracted_iocs = extracted
    summary.written.append(save_iocs(output_dir / EXTRACTED_IOCS_FILE, extracted))

    if verify:
        if has_iocs(extracted):
            if progress_callback:
                progress_callback("Verifying IOCs against OTX...")
            with make_otx_session(settings) as otx:
                verified = filter_verified(extracted, otx, progress_callback)
        else:
            logger.info("No IOCs to verify.")
            verified = {category: [] for category in extracted}
        summary.verified_iocs = verified
        summary.written.append(save_iocs(output_dir / VERIFIED_IOCS_FILE, verified))

    return summary
