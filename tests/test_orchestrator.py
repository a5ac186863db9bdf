from datetime import date
from unittest.mock import MagicMock

import pytest

from matchbridge.config import Settings
from matchbridge.db import make_session
from matchbridge.domain import Quota, ScoreResult
from matchbridge.orchestrator import (
    ABORT_CONFIG,
    ABORT_LOCKED,
    ABORT_QUOTA,
    RunOrchestrator,
    RunState,
    run_automation,
)
from matchbridge.store import StateStore

from conftest import FakeLedger, FakeSource, make_fixture, make_match, NOW


def _orchestrator(source, ledger, **kwargs) -> RunOrchestrator:
    kwargs.setdefault("league_ids", [39, 140, 2])
    kwargs.setdefault("sleep", lambda ms: None)
    kwargs.setdefault("clock", lambda: NOW)
    return RunOrchestrator(source, ledger, **kwargs)


def _settings(**overrides) -> Settings:
    values = dict(
        provider="api_sports",
        api_football_key="key",
        rpc_url="http://localhost:8545",
        contract_address="0x5FbDB2315678afecb367f032d93F642f64180aa3",
        private_key="ac0974bec39a17e36ba4a6b4d238ff944bacb478cbed5efcae784d7bf4f2ff80",
        database_url="sqlite:///:memory:",
    )
    values.update(overrides)
    return Settings(**values)


def test_full_pass_registers_then_settles() -> None:
    ledger = FakeLedger([make_match(1, external_id="200")])
    source = FakeSource(
        fixtures={39: [make_fixture("300")], 140: [make_fixture("301", status="FT")]},
        scores={"200": ScoreResult.finished(2, 1)},
        quota=Quota(current=1, limit_day=100),
    )

    report = _orchestrator(source, ledger).run()

    assert report.states == [RunState.CHECKING_QUOTA, RunState.REGISTERING, RunState.SETTLING, RunState.DONE]
    assert report.created == 1
    assert report.settled == 1
    assert ledger.settle_calls == [(1, 2, 1)]
    # the freshly created match kicks off tomorrow, so it is not settled
    assert ledger.matches[2].outcome == 0


def test_quota_exhaustion_skips_both_phases() -> None:
    ledger = FakeLedger([make_match(1)])
    source = FakeSource(
        fixtures={39: [make_fixture("300")]},
        scores={"101": ScoreResult.finished(1, 0)},
        quota=Quota(current=99, limit_day=100),
    )

    report = _orchestrator(source, ledger, quota_min_remaining=20).run()

    assert report.aborted == ABORT_QUOTA
    assert report.states == [RunState.CHECKING_QUOTA, RunState.DONE]
    assert source.fetched_leagues == []
    assert ledger.created_calls == []
    assert ledger.settle_calls == []


def test_unexpected_registration_error_still_settles() -> None:
    class SigningFailsLedger(FakeLedger):
        def create_match(self, home, away, match_time, external_id):
            if external_id == "1":
                raise TypeError("sign_transaction: bad field")
            return super().create_match(home, away, match_time, external_id)

    ledger = SigningFailsLedger([make_match(1, external_id="200")])
    source = FakeSource(
        fixtures={39: [make_fixture("1"), make_fixture("2")]},
        scores={"200": ScoreResult.finished(1, 0)},
    )

    report = _orchestrator(source, ledger, league_ids=[39]).run()

    assert report.registration.failed == 1
    assert report.created == 1
    assert ledger.settle_calls == [(1, 1, 0)]
    assert report.state == RunState.DONE


def test_failing_league_does_not_stop_other_leagues() -> None:
    ledger = FakeLedger()
    source = FakeSource(fixtures={39: [make_fixture("1")], 2: [make_fixture("3")]})
    source.failing_leagues.add(140)

    report = _orchestrator(source, ledger).run()

    assert source.fetched_leagues == [39, 140, 2]
    assert [c[3] for c in ledger.created_calls] == ["1", "3"]
    assert report.state == RunState.DONE
    assert report.aborted is None


def test_cap_reached_stops_fetching_later_leagues() -> None:
    ledger = FakeLedger()
    source = FakeSource(fixtures={39: [make_fixture("1"), make_fixture("2")], 140: [make_fixture("3")]})

    report = _orchestrator(source, ledger, batch_limit=2).run(settle=False)

    assert report.created == 2
    assert source.fetched_leagues == [39]
    assert report.states == [RunState.CHECKING_QUOTA, RunState.REGISTERING, RunState.DONE]


def test_league_delay_applied_between_leagues() -> None:
    sleeps = []
    source = FakeSource(fixtures={39: [], 140: []})
    _orchestrator(
        source, FakeLedger(), league_ids=[39, 140], sleep=sleeps.append, league_delay_ms=800
    ).run(settle=False)
    assert sleeps == [800, 800]


def test_cursor_persists_low_water(store: StateStore) -> None:
    ledger = FakeLedger([make_match(1, outcome=1), make_match(2, outcome=1), make_match(3)])
    source = FakeSource(scores={"103": ScoreResult.pending()})

    _orchestrator(source, ledger, store=store, settlement_cursor=True).run(register=False)
    assert store.low_water() == 3

    source.scores["103"] = ScoreResult.finished(1, 1)
    report = _orchestrator(source, ledger, store=store, settlement_cursor=True).run(register=False)
    assert report.settlement.start_id == 3
    assert ledger.settle_calls == [(3, 1, 1)]
    assert store.low_water() == 4


def test_snapshot_published(store: StateStore) -> None:
    source = FakeSource(fixtures={39: [make_fixture("300", home="Arsenal", away="Chelsea")]})

    _orchestrator(source, FakeLedger(), store=store, snapshot_key="matches:snapshot").run()

    snap = store.get_json("matches:snapshot")
    assert snap["created"] == 1
    assert snap["registered"][0]["home_team"] == "Arsenal"
    assert snap["registered"][0]["external_id"] == "300"
    assert snap["state"] == "done"
    assert snap["aborted"] is None


def test_from_settings_rotation_picks_one_league() -> None:
    settings = _settings(league_ids="39,140,2", league_mode="rotate", publish_snapshot=True)
    orch = RunOrchestrator.from_settings(settings, FakeSource(), FakeLedger(), today=date(2025, 8, 12))
    assert orch.league_ids == [140]
    assert orch.snapshot_key == "matches:snapshot"


# ── run_automation ──────────────────────────────────────────────────────

def test_missing_configuration_has_no_side_effects() -> None:
    source_factory = MagicMock()
    ledger_factory = MagicMock()
    session_factory = MagicMock()

    report = run_automation(
        _settings(rpc_url="", private_key=""),
        source_factory=source_factory,
        ledger_factory=ledger_factory,
        session_factory=session_factory,
    )

    assert report.aborted == ABORT_CONFIG
    assert report.states == [RunState.DONE]
    source_factory.assert_not_called()
    ledger_factory.assert_not_called()
    session_factory.assert_not_called()


@pytest.mark.parametrize(
    "overrides, missing",
    [
        ({"provider": "api-sports", "api_football_key": ""}, ["PROVIDER"]),
        ({"league_mode": "random"}, ["LEAGUE_MODE"]),
    ],
)
def test_invalid_configuration_has_no_side_effects(overrides, missing) -> None:
    settings = _settings(**overrides)
    source_factory = MagicMock()
    ledger_factory = MagicMock()
    session_factory = MagicMock()

    report = run_automation(
        settings,
        source_factory=source_factory,
        ledger_factory=ledger_factory,
        session_factory=session_factory,
    )

    assert settings.missing_required() == missing
    assert report.aborted == ABORT_CONFIG
    assert report.states == [RunState.DONE]
    source_factory.assert_not_called()
    ledger_factory.assert_not_called()
    session_factory.assert_not_called()


def test_mirror_provider_needs_no_key() -> None:
    assert _settings(provider="mirror", api_football_key="").missing_required() == []
    assert _settings(api_football_key="").missing_required() == ["API_FOOTBALL_KEY"]


def test_run_automation_runs_and_releases_lock(monkeypatch) -> None:
    session = make_session("sqlite:///:memory:")
    monkeypatch.setattr(session, "close", lambda: None)
    ledger = FakeLedger()
    source = FakeSource(fixtures={39: [make_fixture("1")]})
    settings = _settings(league_ids="39", write_delay_ms=0, league_delay_ms=0)

    report = run_automation(
        settings,
        source_factory=lambda s: source,
        ledger_factory=lambda s: ledger,
        session_factory=lambda url: session,
    )

    assert report.created == 1
    assert report.state == RunState.DONE
    assert StateStore(session).get("run.lock") is None


def test_run_automation_skips_when_locked(monkeypatch) -> None:
    session = make_session("sqlite:///:memory:")
    monkeypatch.setattr(session, "close", lambda: None)
    StateStore(session).acquire_lock(ttl_seconds=3600)
    source_factory = MagicMock()

    report = run_automation(
        _settings(),
        source_factory=source_factory,
        ledger_factory=MagicMock(),
        session_factory=lambda url: session,
    )

    assert report.aborted == ABORT_LOCKED
    source_factory.assert_not_called()
    assert StateStore(session).get("run.lock") is not None
