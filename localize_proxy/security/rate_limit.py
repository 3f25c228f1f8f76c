from dataclasses import dataclass
from typing import Optional

from localize_proxy.cache.store import QuotaStore, QuotaStoreUnavailable
from localize_proxy.errors import QuotaUnavailable
from localize_proxy.logger import get_logger
from localize_proxy.settings import QUOTA_UNAVAILABLE_MESSAGE


logger = get_logger("localize.security.rate_limit")

# All callers without an identity header share this bucket.
ANONYMOUS_IDENTITY = "anonymous"


@dataclass(frozen=True)
class Admission:
    allowed: bool
    remaining: int


def resolve_identity(raw: Optional[str]) -> str:
    identity = (raw or "").strip()
    return identity or ANONYMOUS_IDENTITY


class RateLimiter:
    """
    Fixed-window daily quota in front of the translation pipeline.

    Fails closed: if the store is unreachable no request is admitted.
    """

    def __init__(self, store: QuotaStore, limit: int, window_seconds: int):
        self.store = store
        self.limit = limit
        self.window_seconds = window_seconds

    async def admit(self, identity: Optional[str]) -> Admission:
        identity = resolve_identity(identity)

        try:
            allowed, count = await self.store.increment_if_under_limit(
                identity,
                self.limit,
                self.window_seconds,
            )
        except QuotaStoreUnavailable as exc:
            logger.warning("Quota store unavailable, denying %s", identity)
            raise QuotaUnavailable(QUOTA_UNAVAILABLE_MESSAGE) from exc

        if not allowed:
            logger.info("Quota exhausted for %s", identity)
            return Admission(allowed=False, remaining=0)

        return Admission(allowed=True, remaining=max(self.limit - count, 0))
