"""Paths, constants, HTTP settings, and credential loading."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import find_dotenv, load_dotenv
from platformdirs import user_data_dir

APP_NAME = "iocscout"

# GitHub REST API
GITHUB_API_URL = "https://api.github.com"
REPO_SEARCH_URL = f"{GITHUB_API_URL}/search/repositories"
CODE_SEARCH_URL = f"{GITHUB_API_URL}/search/code"
ISSUE_SEARCH_URL = f"{GITHUB_API_URL}/search/issues"
RATE_LIMIT_URL = f"{GITHUB_API_URL}/rate_limit"
GITHUB_ACCEPT = "application/vnd.github.v3+json"

# AlienVault OTX
OTX_API_URL = "https://otx.alienvault.com/api/v1"

# Pagination
PER_PAGE = 100  # GitHub search maximum
MAX_RESULTS = 900
MIN_REMAINING_REQUESTS = 5

# Local storage
DATA_DIR = Path(user_data_dir(APP_NAME))
REPOS_FILE = "repositories_filtered.json"
CODE_FILE = "code_files_filtered.json"
ISSUES_FILE = "issues_filtered.json"
EXTRACTED_IOCS_FILE = "iocs_extracted.json"
VERIFIED_IOCS_FILE = "verified_iocs.json"

# Written in place of an empty result set
NO_DATA = {"message": "no data"}

# HTTP
USER_AGENT = (
    "iocscout/0.1.0 "
    "(+https://github.com/example/iocscout; security-research)"
)
REQUEST_TIMEOUT = 30
REQUEST_DELAY = 1.0  # seconds between GitHub requests
OTX_REQUEST_DELAY = 0.25


@dataclass(frozen=True)
class Settings:
    """Credentials for one run. Both are optional."""

    github_token: str | None = None
    otx_api_key: str | None = None


def load_settings(env_file: Path | str | None = None) -> Settings:
    """Read credentials from the environment, after loading a ``.env`` file.

    Variables already set in the process environment win over the file.
    ``PAT`` is accepted as a fallback name for the GitHub token.
    """
    load_dotenv(env_file if env_file is not None else find_dotenv(usecwd=True))

    token = os.getenv("GITHUB_TOKEN") or os.getenv("PAT") or None
    otx_key = os.getenv("OTX_API_KEY") or None
    return Settings(github_token=token, otx_api_key=otx_key)
