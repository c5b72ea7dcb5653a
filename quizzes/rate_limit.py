"""Fixed-window request throttling for signup, login and character unlocks.

Counters live in the default Django cache. Authenticated callers are counted
per user; anonymous callers per client IP.
"""

from __future__ import annotations

import time
from dataclasses import dataclass

from django.conf import settings
from django.core.cache import cache
from django.http import HttpRequest

SCOPE_SETTINGS = {
    "signup": ("QUIZ_SIGNUP_RATE_LIMIT", 20),
    "login": ("QUIZ_LOGIN_RATE_LIMIT", 40),
    "unlock": ("QUIZ_UNLOCK_RATE_LIMIT", 600),
}


@dataclass(frozen=True)
class RateLimitRule:
    scope: str
    limit: int
    window_seconds: int

    @property
    def enabled(self) -> bool:
        return self.limit > 0 and self.window_seconds > 0


@dataclass(frozen=True)
class RateLimitResult:
    allowed: bool
    remaining: int
    retry_after_seconds: int


def rule_for(scope: str) -> RateLimitRule:
    setting_name, default_limit = SCOPE_SETTINGS[scope]
    return RateLimitRule(
        scope=scope,
        limit=int(getattr(settings, setting_name, default_limit)),
        window_seconds=int(getattr(settings, "QUIZ_RATE_LIMIT_WINDOW_SECONDS", 3600)),
    )


def get_client_ip(request: HttpRequest) -> str:
    forwarded = request.META.get("HTTP_X_FORWARDED_FOR")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.META.get("REMOTE_ADDR", "unknown")


def rate_limit_identity(request: HttpRequest) -> str:
    user = getattr(request, "user", None)
    if user is not None and user.is_authenticated:
        return f"user:{user.pk}"
    return f"ip:{get_client_ip(request)}"


def evaluate_rate_limit(request: HttpRequest, rule: RateLimitRule) -> RateLimitResult:
    if not rule.enabled:
        return RateLimitResult(allowed=True, remaining=0, retry_after_seconds=0)

    key = f"trivia-rate:{rule.scope}:{rate_limit_identity(request)}"
    now = int(time.time())
    window = cache.get(key)

    if not isinstance(window, dict) or int(window.get("reset_at", 0)) <= now:
        cache.set(key, {"hits": 1, "reset_at": now + rule.window_seconds}, timeout=rule.window_seconds)
        return RateLimitResult(allowed=True, remaining=rule.limit - 1, retry_after_seconds=0)

    hits = int(window.get("hits", 0))
    retry_after = max(int(window["reset_at"]) - now, 1)
    if hits >= rule.limit:
        return RateLimitResult(allowed=False, remaining=0, retry_after_seconds=retry_after)

    window["hits"] = hits + 1
    cache.set(key, window, timeout=retry_after)
    return RateLimitResult(allowed=True, remaining=rule.limit - window["hits"], retry_after_seconds=0)
