"""
Query parameter helpers shared by /install and /callback.
"""
import re

from fastapi import Request

# Vendor domain is used as a subdomain of the marketplace host: one DNS label
_DOMAIN_RE = re.compile(r"^[A-Za-z0-9](?:[A-Za-z0-9-]{0,61}[A-Za-z0-9])?$")


def single_valued_params(request: Request) -> dict[str, str] | None:
    """Query parameters as a plain dict. None if any key repeats (the signed message would be ambiguous)."""
    items = request.query_params.multi_items()
    params = dict(items)
    if len(params) != len(items):
        return None
    return params


def is_valid_domain(domain: str | None) -> bool:
    return bool(domain) and _DOMAIN_RE.match(domain) is not None
