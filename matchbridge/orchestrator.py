"""
One automation pass: quota check, fixture registration, settlement.

    CheckingQuota -> Registering -> Settling -> Done

Missing or invalid configuration, a held run lock, or an exhausted quota go straight
to Done. Per-fixture and per-match failures never leave their phase.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Callable, Dict, Iterator, List, Optional, Sequence

from .config import Settings, league_ids_from_settings
from .db import make_session
from .domain import Fixture
from .errors import ConfigurationMissing, QuotaExhausted
from .ledger import Ledger, Web3Ledger
from .quota import QuotaGuard
from .registrar import MatchRegistrar, RegistrationReport
from .rotation import leagues_for_run
from .settlement import SettlementReport, SettlementScanner
from .sources import FixtureSource, build_source
from .store import StateStore
from .utils import now_unix, sleep_ms

log = logging.getLogger(__name__)


class RunState(str, Enum):
    CHECKING_QUOTA = "checking_quota"
    REGISTERING = "registering"
    SETTLING = "settling"
    DONE = "done"


ABORT_CONFIG = "configuration_missing"
ABORT_LOCKED = "locked"
ABORT_QUOTA = "quota_exhausted"


@dataclass
class RunReport:
    started_at: str = field(default_factory=lambda: datetime.now(timezone.utc).isoformat(timespec="seconds"))
    states: List[RunState] = field(default_factory=list)
    aborted: Optional[str] = None
    registration: Optional[RegistrationReport] = None
    settlement: Optional[SettlementReport] = None

    @property
    def created(self) -> int:
        return self.registration.created if self.registration else 0

    @property
    def settled(self) -> int:
        return self.settlement.settled if self.settlement else 0

    @property
    def state(self) -> Optional[RunState]:
        return self.states[-1] if self.states else None

    def snapshot(self) -> Dict:
        registered = self.registration.registered if self.registration else []
        return {
            "generated_at": self.started_at,
            "created": self.created,
            "settled": self.settled,
            "state": self.state.value if self.state else None,
            "aborted": self.aborted,
            "registered": [fx.to_dict() for fx in registered],
        }


class RunOrchestrator:
    def __init__(
        self,
        source: FixtureSource,
        ledger: Ledger,
        league_ids: Sequence[int],
        days_ahead: int = 7,
        batch_limit: int = 10,
        grace_seconds: int = 7200,
        write_delay_ms: int = 500,
        league_delay_ms: int = 800,
        quota_min_remaining: int = 20,
        store: Optional[StateStore] = None,
        settlement_cursor: bool = False,
        snapshot_key: Optional[str] = None,
        sleep: Callable[[int], None] = sleep_ms,
        clock: Callable[[], int] = now_unix,
    ) -> None:
        self.source = source
        self.ledger = ledger
        self.league_ids = list(league_ids)
        self.days_ahead = days_ahead
        self.batch_limit = batch_limit
        self.league_delay_ms = league_delay_ms
        self.store = store
        self.settlement_cursor = settlement_cursor
        self.snapshot_key = snapshot_key
        self.sleep = sleep
        self.clock = clock
        self.quota_guard = QuotaGuard(source, min_remaining=quota_min_remaining)
        self.registrar = MatchRegistrar(ledger, write_delay_ms=write_delay_ms, sleep=sleep)
        self.scanner = SettlementScanner(
            ledger, source, grace_seconds=grace_seconds, write_delay_ms=write_delay_ms, sleep=sleep
        )

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        source: FixtureSource,
        ledger: Ledger,
        store: Optional[StateStore] = None,
        today=None,
    ) -> "RunOrchestrator":
        today = today or datetime.now(timezone.utc).date()
        leagues = leagues_for_run(today, league_ids_from_settings(settings), settings.league_mode)
        return cls(
            source,
            ledger,
            league_ids=leagues,
            days_ahead=settings.days_ahead,
            batch_limit=settings.batch_limit,
            grace_seconds=settings.grace_seconds,
            write_delay_ms=settings.write_delay_ms,
            league_delay_ms=settings.league_delay_ms,
            quota_min_remaining=settings.quota_min_remaining,
            store=store,
            settlement_cursor=settings.settlement_cursor,
            snapshot_key=settings.snapshot_key if settings.publish_snapshot else None,
        )

    def _league_fixtures(self) -> Iterator[Fixture]:
        for league_id in self.league_ids:
            try:
                fixtures = list(self.source.upcoming_fixtures(league_id, self.days_ahead))
            except Exception as exc:  # fail open: other leagues still run
                log.warning("Fixture fetch failed for league %s: %s", league_id, exc)
                fixtures = []
            yield from fixtures
            self.sleep(self.league_delay_ms)

    def run(self, register: bool = True, settle: bool = True) -> RunReport:
        report = RunReport()
        log.info("Starting automation run: %s", report.started_at)

        report.states.append(RunState.CHECKING_QUOTA)
        try:
            self.quota_guard.check()
        except QuotaExhausted as exc:
            log.error("Aborting run: %s", exc)
            report.aborted = ABORT_QUOTA
            report.states.append(RunState.DONE)
            return report

        if register:
            report.states.append(RunState.REGISTERING)
            report.registration = self.registrar.register(self._league_fixtures(), cap=self.batch_limit)
            log.info(
                "Registration done: created=%s attempted=%s failed=%s",
                report.registration.created,
                report.registration.attempted,
                report.registration.failed,
            )

        if settle:
            report.states.append(RunState.SETTLING)
            start_id = self.store.low_water() if (self.settlement_cursor and self.store) else 1
            report.settlement = self.scanner.scan(now=self.clock(), start_id=start_id)
            if self.settlement_cursor and self.store and report.settlement.low_water:
                self.store.set_low_water(report.settlement.low_water)
            log.info(
                "Settlement done: settled=%s checked=%s failed=%s range=[%s, %s)",
                report.settlement.settled,
                report.settlement.checked,
                report.settlement.failed,
                report.settlement.start_id,
                report.settlement.next_match_id,
            )

        report.states.append(RunState.DONE)
        self._publish(report)
        log.info("Automation complete: created=%s settled=%s", report.created, report.settled)
        return report

    def _publish(self, report: RunReport) -> None:
        if not (self.snapshot_key and self.store):
            return
        try:
            self.store.put_json(self.snapshot_key, report.snapshot())
        except Exception as exc:  # the snapshot is for display only
            log.warning("Could not publish snapshot %s: %s", self.snapshot_key, exc)


def run_automation(
    settings: Settings,
    register: bool = True,
    settle: bool = True,
    source_factory: Callable[[Settings], FixtureSource] = build_source,
    ledger_factory: Callable[[Settings], Ledger] = Web3Ledger.from_settings,
    session_factory=make_session,
) -> RunReport:
    """
    Validate configuration, take the run lock, build collaborators, and run
    one pass. Nothing external is touched when configuration is missing.
    """
    try:
        settings.check_required()
    except ConfigurationMissing as exc:
        log.error("Missing or invalid environment variables: %s", ", ".join(exc.missing))
        return RunReport(states=[RunState.DONE], aborted=ABORT_CONFIG)

    session = session_factory(settings.database_url)
    try:
        store = StateStore(session)
        if not store.acquire_lock(settings.run_lock_ttl):
            log.error("Another run holds the lock; skipping this invocation")
            return RunReport(states=[RunState.DONE], aborted=ABORT_LOCKED)
        try:
            source = source_factory(settings)
            ledger = ledger_factory(settings)
            orchestrator = RunOrchestrator.from_settings(settings, source, ledger, store=store)
            return orchestrator.run(register=register, settle=settle)
        finally:
            store.release_lock()
    finally:
        session.close()
