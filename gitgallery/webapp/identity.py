"""Resolve gallery attribution from the incoming request."""

from __future__ import annotations

from typing import Optional

from flask import Request

from gitgallery.models import DEFAULT_CREATED_BY, Attribution

USER_ID_HEADER = "X-User-Id"
USER_LOGIN_HEADER = "X-User-Login"
USER_NAME_HEADER = "X-User-Name"


def attribution_from_headers(request: Request) -> Optional[Attribution]:
    """
    Build an attribution from identity headers set by an upstream proxy.

    Returns ``None`` when the request carries no identity at all; callers
    treat that as unauthenticated.
    """
    user_id = (request.headers.get(USER_ID_HEADER) or "").strip()
    login = (request.headers.get(USER_LOGIN_HEADER) or "").strip()
    name = (request.headers.get(USER_NAME_HEADER) or "").strip()
    if not (user_id or login):
        return None
    return Attribution(
        created_by=name or login or DEFAULT_CREATED_BY,
        created_by_id=user_id,
        created_by_login=login,
    )
