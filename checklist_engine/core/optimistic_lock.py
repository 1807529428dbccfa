"""If-Match / ETag handling for template versions."""

from __future__ import annotations

import re

from fastapi import HTTPException, Response, status

_VERSION_TAG = re.compile(r'^(?:W/)?"?(\d+)"?$')


def parse_if_match(if_match: str | None) -> int | None:
    """
    Template version the client edited:
      If-Match: 3       -> 3
      If-Match: "3"     -> 3
      If-Match: W/"3"   -> 3
      missing or *      -> None (no precondition, last write wins)
    """
    if if_match is None or if_match.strip() in ("", "*"):
        return None

    m = _VERSION_TAG.match(if_match.strip())
    if not m or int(m.group(1)) < 1:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={
                "code": "INVALID_IF_MATCH",
                "message": 'If-Match must be a positive template version, e.g. "3"',
            },
        )
    return int(m.group(1))


def etag_for(version: int) -> str:
    return f'"{version}"'


def set_etag(response: Response, version: int) -> None:
    response.headers["ETag"] = etag_for(version)
