"""Freshness windows for ranking responses.

Longer periods change more slowly, so they may be served from CDN and browser
caches for longer. ``all_time`` shares the monthly tier.
"""

from dataclasses import dataclass

NO_STORE = "no-store"


@dataclass(frozen=True)
class CachePolicy:
    max_age: int
    stale_while_revalidate: int

    def header(self) -> str:
        return (
            f"public, max-age={self.max_age}, s-maxage={self.max_age}, "
            f"stale-while-revalidate={self.stale_while_revalidate}"
        )


RANKINGS_CACHE_POLICIES: dict[str, CachePolicy] = {
    "daily": CachePolicy(max_age=1800, stale_while_revalidate=900),
    "weekly": CachePolicy(max_age=3600, stale_while_revalidate=1800),
    "monthly": CachePolicy(max_age=7200, stale_while_revalidate=3600),
}


def rankings_cache_policy(period: str) -> CachePolicy:
    if period == "all_time":
        return RANKINGS_CACHE_POLICIES["monthly"]
    return RANKINGS_CACHE_POLICIES.get(period, RANKINGS_CACHE_POLICIES["weekly"])


def cache_control_header(period: str | None) -> str:
    """Cache-Control value for a ranking response; errors are never cached."""
    if period is None:
        return NO_STORE
    return rankings_cache_policy(period).header()
