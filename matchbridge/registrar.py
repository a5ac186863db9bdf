from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable, Iterable, List

from .domain import Fixture
from .errors import LedgerError
from .ledger import Ledger
from .utils import sleep_ms

log = logging.getLogger(__name__)


@dataclass
class RegistrationReport:
    created: int = 0
    attempted: int = 0
    failed: int = 0
    skipped: int = 0
    registered: List[Fixture] = field(default_factory=list)


class MatchRegistrar:
    """
    Turns not-started fixtures into on-chain matches. The cap bounds
    successful creations per run; the contract rejects duplicates.
    """

    def __init__(
        self,
        ledger: Ledger,
        write_delay_ms: int = 500,
        sleep: Callable[[int], None] = sleep_ms,
    ) -> None:
        self.ledger = ledger
        self.write_delay_ms = write_delay_ms
        self.sleep = sleep

    def register(self, fixtures: Iterable[Fixture], cap: int) -> RegistrationReport:
        report = RegistrationReport()
        if cap <= 0:
            return report
        seen = set()
        for fx in fixtures:
            if not fx.is_actionable:
                report.skipped += 1
                continue
            external_id = str(fx.external_id)
            if external_id in seen:
                report.skipped += 1
                continue
            seen.add(external_id)

            report.attempted += 1
            try:
                tx = self.ledger.create_match(fx.home_team, fx.away_team, fx.match_time, external_id)
            except LedgerError as exc:
                report.failed += 1
                log.warning("createMatch failed for fixture %s: %s", external_id, exc)
                continue
            except Exception as exc:  # one bad fixture must not stop the run
                report.failed += 1
                log.warning("createMatch errored for fixture %s: %r", external_id, exc)
                continue

            report.created += 1
            report.registered.append(fx)
            log.info("Created match: %s vs %s | fixture=%s tx=%s", fx.home_team, fx.away_team, external_id, tx)
            self.sleep(self.write_delay_ms)
            if report.created >= cap:
                log.info("Creation cap %s reached", cap)
                break
        return report
