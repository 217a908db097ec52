from __future__ import annotations

import re
from collections.abc import Iterable
from dataclasses import replace
from urllib.parse import urlparse

from .models import GroupWithSites, Site

DEFAULT_ICON_API = "https://www.faviconextractor.com/favicon/{domain}?larger=true"

DEFAULT_CONFIGS: dict[str, str] = {
    "site.title": "Navigation",
    "site.name": "Navigation",
    "site.customCss": "",
    "site.backgroundImage": "",
    "site.backgroundOpacity": "0.15",
    "site.iconApi": DEFAULT_ICON_API,
}

_SCHEME_RE = re.compile(r"^https?://", re.IGNORECASE)
_DOMAIN_FALLBACK_RE = re.compile(
    r"^(?:https?://)?(?:[^@\n]+@)?(?:www\.)?([^:/\n?]+)", re.IGNORECASE | re.MULTILINE
)


def with_defaults(configs: dict[str, str]) -> dict[str, str]:
    merged = dict(DEFAULT_CONFIGS)
    merged.update(configs)
    return merged


def extract_domain(url: str) -> str | None:
    if not url:
        return None
    full_url = url if _SCHEME_RE.match(url) else f"http://{url}"
    try:
        hostname = urlparse(full_url).hostname
    except ValueError:
        hostname = None
    if hostname:
        return hostname
    match = _DOMAIN_FALLBACK_RE.match(url)
    if match and match.group(1):
        return match.group(1)
    return url


def icon_url(site: Site, icon_api: str | None = None) -> str:
    if site.icon:
        return site.icon
    domain = extract_domain(site.url)
    if not domain:
        return ""
    return (icon_api or DEFAULT_ICON_API).replace("{domain}", domain)


def site_matches(site: Site, keyword: str) -> bool:
    needle = keyword.strip().lower()
    if not needle:
        return True
    haystack = (site.name, site.url, site.description)
    return any(needle in value.lower() for value in haystack)


def filter_groups(groups: Iterable[GroupWithSites], keyword: str) -> list[GroupWithSites]:
    if not keyword.strip():
        return list(groups)
    filtered: list[GroupWithSites] = []
    for group in groups:
        hits = tuple(site for site in group.sites if site_matches(site, keyword))
        if hits:
            filtered.append(replace(group, sites=hits))
    return filtered
