"""
Flow Puzzle - Security Middleware

Rate limiting, request size checks, security headers.
"""

from fastapi import Request, HTTPException, status
from slowapi import Limiter
from slowapi.util import get_remote_address
from typing import Callable

from ..config import settings


PLAYER_HEADER = "X-Player-Id"


# ============================================
# RATE LIMITER
# ============================================

def get_rate_limit_key(request: Request) -> str:
    """
    Rate limit key.
    IP plus the player id header when the client sends one.
    """
    ip = get_remote_address(request)
    player_id = request.headers.get(PLAYER_HEADER)

    if player_id:
        return f"{ip}:{player_id}"
    return ip


limiter = Limiter(key_func=get_rate_limit_key)


# ============================================
# REQUEST VALIDATORS
# ============================================

async def validate_json_size(request: Request, max_size: int = 1024 * 100):
    """
    Rejects oversized bodies (100KB by default). A 40x40 level with seen
    fingerprints fits well below that.
    """
    content_length = request.headers.get("content-length")

    if content_length and int(content_length) > max_size:
        raise HTTPException(
            status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
            detail="Request too large"
        )


# ============================================
# SECURITY HEADERS MIDDLEWARE
# ============================================

async def add_security_headers(request: Request, call_next: Callable):
    """Adds security headers to every response."""
    response = await call_next(request)

    response.headers["X-Content-Type-Options"] = "nosniff"
    response.headers["X-Frame-Options"] = "DENY"
    response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"

    if settings.is_production:
        response.headers["Strict-Transport-Security"] = "max-age=31536000; includeSubDomains"

    # The API only serves JSON
    if not settings.DEBUG:
        response.headers["Content-Security-Policy"] = "default-src 'none'; frame-ancestors 'none'"

    return response
