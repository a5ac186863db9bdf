from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Optional

from .errors import MatchBridgeError
from .ledger import Ledger
from .sources import ScoreSource
from .utils import now_unix, sleep_ms

log = logging.getLogger(__name__)

GRACE_SECONDS = 7200


@dataclass
class SettlementReport:
    settled: int = 0
    checked: int = 0
    failed: int = 0
    start_id: int = 1
    next_match_id: int = 1
    # lowest id that was still open during this scan
    low_water: Optional[int] = None


class SettlementScanner:
    """
    Walks ledger ids in ascending order and settles open matches whose
    grace window has passed and whose provider record is at full time.
    """

    def __init__(
        self,
        ledger: Ledger,
        scores: ScoreSource,
        grace_seconds: int = GRACE_SECONDS,
        write_delay_ms: int = 500,
        sleep: Callable[[int], None] = sleep_ms,
    ) -> None:
        self.ledger = ledger
        self.scores = scores
        self.grace_seconds = grace_seconds
        self.write_delay_ms = write_delay_ms
        self.sleep = sleep

    def scan(self, now: Optional[int] = None, start_id: int = 1) -> SettlementReport:
        now = now_unix() if now is None else now
        start_id = max(start_id, 1)
        report = SettlementReport(start_id=start_id)
        try:
            next_id = self.ledger.next_match_id()
        except MatchBridgeError as exc:
            log.error("Could not read nextMatchId, skipping settlement: %s", exc)
            report.next_match_id = start_id
            return report
        report.next_match_id = next_id

        for match_id in range(start_id, next_id):
            try:
                still_open = self._settle_one(match_id, now, report)
            except Exception as exc:  # one bad match must not stop the scan
                report.failed += 1
                still_open = True
                log.warning("Error settling match %s: %s", match_id, exc)
            if still_open and report.low_water is None:
                report.low_water = match_id

        if report.low_water is None:
            report.low_water = max(next_id, start_id)
        return report

    def _settle_one(self, match_id: int, now: int, report: SettlementReport) -> bool:
        """Return True while the match still needs attention on a later run."""
        match = self.ledger.get_match(match_id)
        if match.is_terminal:
            return False
        if match.settleable_at(self.grace_seconds) > now:
            return True

        report.checked += 1
        log.info("Checking result for match %s: %s vs %s", match.id, match.home, match.away)
        result = self.scores.score(match.external_match_id)
        if result is None or not result.is_finished:
            log.info("Match %s not finished yet (fixture=%s)", match.id, match.external_match_id)
            return True

        tx = self.ledger.settle_match(match.id, result.home_score, result.away_score)
        report.settled += 1
        log.info(
            "Settled match %s %s-%s | tx=%s", match.id, result.home_score, result.away_score, tx
        )
        self.sleep(self.write_delay_ms)
        return False
