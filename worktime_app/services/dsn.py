# worktime_app/services/dsn.py
"""
Small helpers for database URL query parameters.
"""

from __future__ import annotations

from typing import Mapping
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit


def _is_postgres(dsn: str) -> bool:
    lower = dsn.lower()
    return lower.startswith("postgres://") or lower.startswith("postgresql://")


def add_query_params(url: str, extra: Mapping[str, str]) -> str:
    """
    Return `url` with the query parameters in `extra` added/overridden.
    Keys with None values are ignored.
    """
    if not url:
        return url

    parts = urlsplit(url)
    params = dict(parse_qsl(parts.query, keep_blank_values=True))
    for k, v in extra.items():
        if v is None:
            continue
        params[str(k)] = str(v)
    return urlunsplit((parts.scheme, parts.netloc, parts.path, urlencode(params), parts.fragment))


def with_db_defaults(dsn: str) -> str:
    """
    Ensure sensible default parameters for Postgres URLs: sslmode=require
    and a short connect_timeout, unless already present. Other URLs are
    returned unchanged.
    """
    if not dsn or not _is_postgres(dsn):
        return dsn

    params = dict(parse_qsl(urlsplit(dsn).query, keep_blank_values=True))
    defaults = {}
    if "sslmode" not in params:
        defaults["sslmode"] = "require"
    if "connect_timeout" not in params:
        defaults["connect_timeout"] = "5"
    return add_query_params(dsn, defaults)
