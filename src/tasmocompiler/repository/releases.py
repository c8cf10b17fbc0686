"""Release catalog of the firmware repository.

Lists the versions a build request may name in ``tasmotaVersion``: the
``development`` branch followed by the release tags published on GitHub,
newest first.
"""

import logging
import re
from typing import List, Optional

import requests

from ..errors import ReleaseCatalogError

DEFAULT_REPOSITORY = "arendst/Tasmota"
DEVELOPMENT_BRANCH = "development"
GITHUB_API = "https://api.github.com"
RELEASE_TAG_PATTERN = re.compile(r"^v\d+\.\d+\.\d+(\.\d+)?$")


def _tag_key(tag: str) -> tuple:
    return tuple(int(part) for part in tag.lstrip("v").split("."))


def fetch_release_versions(
    repository: str = DEFAULT_REPOSITORY,
    session: Optional[requests.Session] = None,
    timeout: float = 10,
) -> List[str]:
    """
    Fetch selectable firmware versions.

    Args:
        repository: GitHub ``owner/name`` of the firmware repository
        session: Optional requests session (for connection reuse and tests)
        timeout: Request timeout in seconds

    Returns:
        ``['development', 'v13.1.0', 'v13.0.0', ...]``

    Raises:
        ReleaseCatalogError: If the GitHub API cannot be reached or answers
            with something unexpected
    """
    http = session if session is not None else requests.Session()
    url = f"{GITHUB_API}/repos/{repository}/tags"

    try:
        response = http.get(
            url,
            params={"per_page": 100},
            headers={"Accept": "application/vnd.github+json"},
            timeout=timeout,
        )
        response.raise_for_status()
        payload = response.json()
    except requests.RequestException as e:
        raise ReleaseCatalogError(f"Failed to fetch releases from {url}: {e}") from e
    except ValueError as e:
        raise ReleaseCatalogError(f"Invalid JSON from {url}: {e}") from e

    if not isinstance(payload, list):
        raise ReleaseCatalogError(f"Unexpected response from {url}")

    tags = [item.get("name", "") for item in payload if isinstance(item, dict)]
    releases = sorted(
        (tag for tag in tags if RELEASE_TAG_PATTERN.match(tag)),
        key=_tag_key,
        reverse=True,
    )
    logging.debug(f"Found {len(releases)} release tags in {repository}")

    return [DEVELOPMENT_BRANCH] + releases
