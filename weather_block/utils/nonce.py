"""
Time-windowed request nonces.

A nonce is an HMAC-SHA256 of ``tick|action`` truncated to 10 hex characters,
where ``tick`` advances every half lifetime. A nonce verifies during the tick
it was created in and the one after it, so it lives between half and the full
lifetime.
"""

import hashlib
import hmac
import math
import time

REST_ACTION = "wp_rest"
ADMIN_ACTION = "weather_block_admin"

NONCE_LENGTH = 10


def nonce_tick(lifetime_seconds: int, now: float | None = None) -> int:
    """Current nonce tick for the given lifetime."""
    now = time.time() if now is None else now
    return math.ceil(now / (lifetime_seconds / 2))


def _sign(tick: int, action: str, secret: str) -> str:
    canonical = f"{tick}|{action}"
    digest = hmac.new(
        secret.encode("utf-8"),
        canonical.encode("utf-8"),
        hashlib.sha256,
    ).hexdigest()
    return digest[-12:-2]


def create_nonce(
    action: str, secret: str, lifetime_seconds: int, now: float | None = None
) -> str:
    """Create a nonce for ``action`` valid for the current tick."""
    return _sign(nonce_tick(lifetime_seconds, now), action, secret)


def verify_nonce(
    nonce: str | None,
    action: str,
    secret: str,
    lifetime_seconds: int,
    now: float | None = None,
) -> int:
    """
    Verify a nonce for ``action``.

    Returns 1 if it was generated in the current tick, 2 if it was generated
    in the previous tick, and 0 if it is missing or invalid.
    """
    if not nonce or len(nonce) != NONCE_LENGTH:
        return 0

    tick = nonce_tick(lifetime_seconds, now)

    # Timing-safe comparison
    if hmac.compare_digest(_sign(tick, action, secret), nonce):
        return 1
    if hmac.compare_digest(_sign(tick - 1, action, secret), nonce):
        return 2

    return 0
