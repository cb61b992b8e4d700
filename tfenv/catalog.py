"""Remote catalog of published versions.

Terraform versions are scraped from the HashiCorp release index (an HTML
directory listing); OpenTofu versions come from the GitHub releases API.
Both listings are reduced to strict semantic versions and returned highest
first.
"""

from __future__ import annotations

import logging
import re
from typing import TYPE_CHECKING, Any, Iterable

import requests

from .config import Product
from .errors import CatalogParseError, CatalogUnavailableError
from .utils import console, fetch
from .version import is_semver, sort_versions

if TYPE_CHECKING:
    from .config import TfenvConfig

logger = logging.getLogger(__name__)

_HREF_RE = re.compile(r"""href\s*=\s*["']([^"']+)["']""", re.IGNORECASE)
_API_PAGE_SIZE = 100


def _candidate_from_href(href: str) -> str:
    """Reduce a link such as ``/terraform/1.6.0/`` to ``1.6.0``."""
    segment = href.split("?", 1)[0].rstrip("/").rsplit("/", 1)[-1]
    segment = segment.removeprefix("terraform_")
    return segment.removeprefix("v")


def _filter_versions(
    candidates: Iterable[str],
    include_prereleases: bool,  # noqa: FBT001
) -> list[str]:
    return sort_versions(
        c for c in candidates if is_semver(c, include_prereleases=include_prereleases)
    )


def parse_release_index(
    html: str,
    include_prereleases: bool = False,  # noqa: FBT001, FBT002
) -> list[str]:
    """Extract versions from an HTML release index."""
    hrefs = _HREF_RE.findall(html)
    return _filter_versions((_candidate_from_href(h) for h in hrefs), include_prereleases)


def parse_release_api(
    releases: list[dict[str, Any]],
    include_prereleases: bool = False,  # noqa: FBT001, FBT002
) -> list[str]:
    """Extract versions from a GitHub releases API payload."""
    tags = []
    for release in releases:
        if not isinstance(release, dict) or release.get("draft"):
            continue
        tag = release.get("tag_name")
        if isinstance(tag, str):
            tags.append(tag.lstrip("v"))
    return _filter_versions(tags, include_prereleases)


def _fetch(url: str, config: TfenvConfig, **kwargs: Any) -> requests.Response:
    try:
        return fetch(url, config.timeout, **kwargs)
    except requests.Timeout as e:
        msg = f"Timed out after {config.timeout}s fetching {url}"
        raise CatalogUnavailableError(msg) from e
    except requests.RequestException as e:
        msg = f"Failed to fetch release index {url}: {e}"
        raise CatalogUnavailableError(msg) from e


def _list_release_index(url: str, config: TfenvConfig, include_prereleases: bool) -> list[str]:  # noqa: FBT001
    console.print(f"🔍 [blue]Fetching release index from {url}[/blue]")
    response = _fetch(url, config)
    return parse_release_index(response.text, include_prereleases)


def _list_release_api(index_url: str, config: TfenvConfig, include_prereleases: bool) -> list[str]:  # noqa: FBT001
    url: str | None = index_url
    console.print(f"🔍 [blue]Fetching releases from {url}[/blue]")
    releases: list[dict[str, Any]] = []
    params: dict[str, Any] | None = {"per_page": _API_PAGE_SIZE}
    while url:
        response = _fetch(url, config, params=params)
        try:
            page = response.json()
        except ValueError as e:
            msg = f"Release API at {url} returned invalid JSON"
            raise CatalogParseError(msg) from e
        if not isinstance(page, list):
            msg = f"Release API at {url} returned an unexpected payload"
            raise CatalogParseError(msg)
        releases.extend(page)
        # The next link already carries the query string
        url = response.links.get("next", {}).get("url")
        params = None
    return parse_release_api(releases, include_prereleases)


def list_versions(
    product: Product,
    config: TfenvConfig,
    include_prereleases: bool = False,  # noqa: FBT001, FBT002
) -> list[str]:
    """List published versions of ``product``, highest first."""
    index_url = config.index_url(product)
    if product is Product.TERRAFORM:
        versions = _list_release_index(index_url, config, include_prereleases)
    else:
        versions = _list_release_api(index_url, config, include_prereleases)

    if not versions:
        msg = f"No {product.value} versions found at {index_url}"
        raise CatalogParseError(msg)
    logger.debug("Found %d %s versions", len(versions), product.value)
    return versions
