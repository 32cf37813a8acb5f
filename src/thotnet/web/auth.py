"""Bearer-token authentication against the auth_sessions table.

Tokens are issued by `thotnet issue-token <user-id>`. A valid token makes
sure the user has a profile, so downstream code can award XP right away.
"""

from __future__ import annotations

import structlog
from fastapi import Depends, Header

from thotnet.db import auth_repository, profiles_repository
from thotnet.db.database import Database
from thotnet.errors import AuthenticationRequired
from thotnet.web.dependencies import get_db

logger = structlog.get_logger(__name__)

BEARER_PREFIX = "bearer "


def parse_bearer(authorization: str | None) -> str | None:
    """Token from an "Authorization: Bearer <token>" header, if well formed."""
    if not authorization or not authorization.lower().startswith(BEARER_PREFIX):
        return None
    token = authorization[len(BEARER_PREFIX):].strip()
    return token or None


def resolve_user(db: Database, authorization: str | None) -> str | None:
    """User ID for a header, or None when missing, unknown or expired."""
    token = parse_bearer(authorization)
    if token is None:
        return None

    user_id = auth_repository.get_session_user(db, token)
    if user_id is None:
        logger.info("auth_token_rejected")
        return None

    profiles_repository.ensure_profile(db, user_id)
    return user_id


def current_user(
    authorization: str | None = Header(default=None),
    db: Database = Depends(get_db),
) -> str:
    """Authenticated user ID.

    Raises:
        AuthenticationRequired: Missing, unknown or expired token
    """
    user_id = resolve_user(db, authorization)
    if user_id is None:
        raise AuthenticationRequired()
    return user_id


def optional_user(
    authorization: str | None = Header(default=None),
    db: Database = Depends(get_db),
) -> str | None:
    """Authenticated user ID, or None for anonymous callers."""
    return resolve_user(db, authorization)
