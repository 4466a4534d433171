"""
Immersion Facilitée — Operator authentication

Read endpoints are open.  Mutating endpoints (the PE sync trigger) need an
operator key sent as X-API-Key, checked with bcrypt against
IF_ADMIN_API_KEY_HASH.  Accepted keys are remembered for a few minutes,
keyed by their SHA-256 digest, so bcrypt runs once per key and window.
"""

from __future__ import annotations

import hashlib
import logging
import time
from dataclasses import dataclass
from typing import Callable

import bcrypt
from fastapi import HTTPException, Request, Response
from fastapi.responses import JSONResponse
from starlette.middleware.base import RequestResponseEndpoint

from . import config

logger = logging.getLogger(__name__)

API_KEY_HEADER = "X-API-Key"

TIER_HIERARCHY = {
    "public": 0,
    "admin": 10,
}


@dataclass(frozen=True)
class AuthContext:
    """Who is calling, as resolved by auth_middleware."""

    tier: str = "public"
    actor_id: str = "anonymous"
    actor_type: str = "anonymous"

    @property
    def is_anonymous(self) -> bool:
        return self.actor_type == "anonymous"


ANONYMOUS = AuthContext()

OPERATOR = AuthContext(tier="admin", actor_id="apikey:operator", actor_type="operator")

# ---------------------------------------------------------------------------
# Accepted-key cache
# ---------------------------------------------------------------------------

_CACHE_TTL_SECONDS = 300
_accepted: dict[str, tuple[AuthContext, float]] = {}


def _digest(api_key: str) -> str:
    return hashlib.sha256(api_key.encode("utf-8")).hexdigest()


def _cache_get(api_key: str) -> AuthContext | None:
    key = _digest(api_key)
    hit = _accepted.get(key)
    if hit is None:
        return None
    ctx, expires_at = hit
    if time.monotonic() >= expires_at:
        _accepted.pop(key, None)
        return None
    return ctx


def _cache_set(api_key: str, ctx: AuthContext) -> None:
    _accepted[_digest(api_key)] = (ctx, time.monotonic() + _CACHE_TTL_SECONDS)


def clear_cache() -> None:
    _accepted.clear()


def _validate_key(api_key: str) -> AuthContext | None:
    expected = config.ADMIN_API_KEY_HASH
    if not expected:
        logger.warning("Auth: IF_ADMIN_API_KEY_HASH is empty, every API key is refused")
        return None
    try:
        ok = bcrypt.checkpw(api_key.encode("utf-8"), expected.encode("utf-8"))
    except ValueError as e:
        logger.error("Auth: IF_ADMIN_API_KEY_HASH is not a bcrypt hash: %s", e)
        return None
    return OPERATOR if ok else None


# ---------------------------------------------------------------------------
# Middleware and route dependency
# ---------------------------------------------------------------------------


async def auth_middleware(request: Request, call_next: RequestResponseEndpoint) -> Response:
    """
    Attach request.state.auth.

    A request without key is anonymous.  A key that does not verify is
    answered with 401 before reaching any route, even an open one.
    """
    api_key = request.headers.get(API_KEY_HEADER, "").strip()
    if not api_key:
        request.state.auth = ANONYMOUS
        return await call_next(request)

    ctx = _cache_get(api_key)
    if ctx is None:
        ctx = _validate_key(api_key)
        if ctx is None:
            logger.info("Auth: rejected API key on %s %s", request.method, request.url.path)
            return JSONResponse(
                status_code=401,
                content={"detail": "Invalid API key"},
                headers={"WWW-Authenticate": "ApiKey"},
            )
        _cache_set(api_key, ctx)

    request.state.auth = ctx
    return await call_next(request)


def require_tier(min_tier: str) -> Callable:
    """
    Route dependency: 401 for anonymous callers, 403 for authenticated
    callers below ``min_tier``.
    """
    required = TIER_HIERARCHY[min_tier]

    async def _check(request: Request) -> AuthContext:
        ctx: AuthContext = getattr(request.state, "auth", ANONYMOUS)
        if TIER_HIERARCHY.get(ctx.tier, 0) >= required:
            return ctx
        if ctx.is_anonymous:
            raise HTTPException(
                status_code=401,
                detail=f"This endpoint needs an operator key in the {API_KEY_HEADER} header.",
            )
        raise HTTPException(
            status_code=403,
            detail=f"Tier '{ctx.tier}' cannot call this endpoint (needs '{min_tier}').",
        )

    return _check
