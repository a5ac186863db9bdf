from __future__ import annotations

import logging
from typing import Optional

from .domain import Quota
from .errors import QuotaExhausted, SourceUnavailable
from .sources import FixtureSource

log = logging.getLogger(__name__)


class QuotaGuard:
    def __init__(self, source: FixtureSource, min_remaining: int = 20) -> None:
        self.source = source
        self.min_remaining = min_remaining

    def check(self) -> Optional[Quota]:
        """
        Raise QuotaExhausted when the provider reports fewer than
        ``min_remaining`` calls left today. An unreadable status is logged
        and the run continues.
        """
        if self.min_remaining <= 0:
            return None
        try:
            quota = self.source.quota()
        except SourceUnavailable as exc:
            log.warning("Could not read provider quota, continuing: %s", exc)
            return None
        if quota is None:
            log.debug("Provider exposes no quota endpoint")
            return None
        log.info("Provider quota: %s/%s used, %s remaining", quota.current, quota.limit_day, quota.remaining)
        if quota.remaining < self.min_remaining:
            raise QuotaExhausted(quota.remaining, self.min_remaining)
        return quota
