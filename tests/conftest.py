from __future__ import annotations

from typing import Dict, Iterator, List, Optional

import pytest

from matchbridge.db import make_session
from matchbridge.domain import Fixture, OnChainMatch, Quota, ScoreResult
from matchbridge.errors import LedgerError, SourceUnavailable, WriteRejected
from matchbridge.ledger import Ledger
from matchbridge.sources import FixtureSource, ScoreSource
from matchbridge.store import StateStore

NOW = 1_750_000_000


class FakeLedger(Ledger):
    """In-memory contract: sequential ids from 1, rejects duplicate external ids."""

    def __init__(self, matches: Optional[List[OnChainMatch]] = None) -> None:
        self.matches: Dict[int, OnChainMatch] = {m.id: m for m in matches or []}
        self.created_calls: List[tuple] = []
        self.settle_calls: List[tuple] = []
        self.fail_create: set = set()
        self.fail_read: set = set()
        self.fail_next_id = False

    def next_match_id(self) -> int:
        if self.fail_next_id:
            raise LedgerError("rpc down")
        return max(self.matches, default=0) + 1

    def get_match(self, match_id: int) -> OnChainMatch:
        if match_id in self.fail_read:
            raise LedgerError(f"cannot read {match_id}")
        if match_id not in self.matches:
            return OnChainMatch(0, "", "", 0, 0, False, False, "")
        return self.matches[match_id]

    def create_match(self, home: str, away: str, match_time: int, external_id: str) -> str:
        self.created_calls.append((home, away, match_time, external_id))
        if external_id in self.fail_create:
            raise WriteRejected("reverted")
        if any(m.external_match_id == external_id for m in self.matches.values()):
            raise WriteRejected("Match already exists")
        new_id = self.next_match_id()
        self.matches[new_id] = OnChainMatch(new_id, home, away, match_time, 0, True, False, external_id)
        return f"0xcreate{new_id}"

    def settle_match(self, match_id: int, home_score: int, away_score: int) -> str:
        self.settle_calls.append((match_id, home_score, away_score))
        m = self.matches[match_id]
        self.matches[match_id] = OnChainMatch(
            m.id, m.home, m.away, m.match_time, 1, m.exists, m.deleted, m.external_match_id
        )
        return f"0xsettle{match_id}"


class FakeSource(FixtureSource, ScoreSource):
    def __init__(
        self,
        fixtures: Optional[Dict[int, List[Fixture]]] = None,
        scores: Optional[Dict[str, Optional[ScoreResult]]] = None,
        quota: Optional[Quota] = None,
    ) -> None:
        self.fixtures = fixtures or {}
        self.scores = scores or {}
        self._quota = quota
        self.failing_leagues: set = set()
        self.failing_scores: set = set()
        self.fetched_leagues: List[int] = []
        self.score_calls: List[str] = []

    def upcoming_fixtures(self, league_id: int, days_ahead: int) -> Iterator[Fixture]:
        self.fetched_leagues.append(league_id)
        if league_id in self.failing_leagues:
            raise SourceUnavailable(f"league {league_id} down")
        yield from self.fixtures.get(league_id, [])

    def score(self, external_id):
        self.score_calls.append(external_id)
        if external_id in self.failing_scores:
            raise SourceUnavailable("provider unreachable")
        return self.scores.get(external_id)

    def quota(self):
        return self._quota


def make_fixture(external_id, home="A", away="B", match_time=NOW + 86400, status="NS", league_id=39) -> Fixture:
    return Fixture(external_id, home, away, match_time, status, league_id)


def make_match(
    match_id: int,
    match_time: int = NOW - 10_000,
    outcome: int = 0,
    exists: bool = True,
    deleted: bool = False,
    external_id: Optional[str] = None,
) -> OnChainMatch:
    return OnChainMatch(
        match_id,
        f"Home{match_id}",
        f"Away{match_id}",
        match_time,
        outcome,
        exists,
        deleted,
        external_id or str(100 + match_id),
    )


@pytest.fixture
def no_sleep():
    calls = []
    return calls.append


@pytest.fixture
def store() -> StateStore:
    session = make_session("sqlite:///:memory:")
    try:
        yield StateStore(session)
    finally:
        session.close()
