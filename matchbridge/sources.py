"""
Fixture and score sources.

Both capabilities are backed by API-Football; the keyed host and the free
mirror differ only in base URL, credentials, and whether a quota endpoint
exists, so one class covers both.
"""

from __future__ import annotations

import abc
import logging
from datetime import date, datetime, timedelta, timezone
from typing import Dict, Iterator, Optional

from .api import FootballApiClient
from .config import PROVIDERS, Settings
from .domain import FULL_TIME, Fixture, Quota, ScoreResult
from .errors import SourceUnavailable
from .utils import safe_int, to_unix

log = logging.getLogger(__name__)


class FixtureSource(abc.ABC):
    @abc.abstractmethod
    def upcoming_fixtures(self, league_id: int, days_ahead: int) -> Iterator[Fixture]:
        """
        Yield fixtures kicking off within ``days_ahead`` days. Never raises
        for provider failures; yields nothing instead.
        """

    def quota(self) -> Optional[Quota]:
        """Remaining provider allowance, or None when the provider has no quota endpoint."""
        return None


class ScoreSource(abc.ABC):
    @abc.abstractmethod
    def score(self, external_id) -> Optional[ScoreResult]:
        """
        None when the provider has no record, pending until full time.
        Raises SourceUnavailable on transport failure.
        """


def normalize_fixture(raw: Dict, league_id: Optional[int] = None) -> Fixture:
    """
    Map an API-Football fixture row to a Fixture. Raises ValueError when a
    required field is missing.
    """
    fixture = raw.get("fixture") or {}
    teams = raw.get("teams") or {}
    external_id = fixture.get("id")
    if external_id is None or external_id == "":
        raise ValueError("fixture.id missing")
    home = ((teams.get("home") or {}).get("name") or "").strip()
    away = ((teams.get("away") or {}).get("name") or "").strip()
    if not home or not away:
        raise ValueError(f"team names missing for fixture {external_id}")
    raw_date = fixture.get("date") or fixture.get("timestamp")
    status = ((fixture.get("status") or {}).get("short") or "").strip()
    if league_id is None:
        league_id = safe_int((raw.get("league") or {}).get("id"))
    return Fixture(
        external_id=external_id,
        home_team=home,
        away_team=away,
        match_time=to_unix(raw_date),
        status=status,
        league_id=league_id,
    )


def _goal_count(value) -> Optional[int]:
    """Non-negative whole number, or None for anything fractional or malformed."""
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value if value >= 0 else None
    if isinstance(value, float):
        return int(value) if value.is_integer() and value >= 0 else None
    if isinstance(value, str) and value.strip().isdigit():
        return int(value.strip())
    return None


def normalize_score(raw: Optional[Dict]) -> Optional[ScoreResult]:
    """
    Finished only on an explicit FT status with two non-negative goal
    counts; everything else is pending.
    """
    if not raw:
        return None
    status = (((raw.get("fixture") or {}).get("status") or {}).get("short") or "").strip()
    if status != FULL_TIME:
        return ScoreResult.pending()
    goals = raw.get("goals") or {}
    home = goals.get("home")
    away = goals.get("away")
    home_score = _goal_count(home)
    away_score = _goal_count(away)
    if home_score is None or away_score is None:
        log.warning("Fixture marked FT but goals are ambiguous: %s", goals)
        return ScoreResult.pending()
    return ScoreResult.finished(home_score, away_score)


class ApiFootballSource(FixtureSource, ScoreSource):
    def __init__(
        self,
        client: FootballApiClient,
        season: Optional[int] = None,
        has_quota: bool = True,
    ) -> None:
        self.client = client
        self.season = season
        self.has_quota = has_quota

    def _window(self, days_ahead: int) -> tuple[date, date]:
        today = datetime.now(timezone.utc).date()
        return today, today + timedelta(days=days_ahead)

    def upcoming_fixtures(self, league_id: int, days_ahead: int) -> Iterator[Fixture]:
        date_from, date_to = self._window(days_ahead)
        try:
            rows = self.client.get_fixtures(league_id, date_from, date_to, season=self.season)
        except SourceUnavailable as exc:
            log.warning("SourceUnavailable for league %s: %s", league_id, exc)
            return
        log.info("Fixtures fetched for league %s: %s", league_id, len(rows))
        for row in rows:
            try:
                yield normalize_fixture(row, league_id=league_id)
            except (AttributeError, TypeError, ValueError) as exc:
                log.warning("Skipping malformed fixture in league %s: %s", league_id, exc)

    def score(self, external_id) -> Optional[ScoreResult]:
        raw = self.client.get_fixture(external_id)
        try:
            return normalize_score(raw)
        except (AttributeError, TypeError) as exc:
            raise SourceUnavailable(f"Malformed fixture {external_id}: {exc}") from exc

    def quota(self) -> Optional[Quota]:
        if not self.has_quota:
            return None
        status = self.client.get_status()
        requests_info = status.get("requests") or {}
        current = safe_int(requests_info.get("current"))
        limit_day = safe_int(requests_info.get("limit_day"))
        if current is None or limit_day is None:
            raise SourceUnavailable(f"Status payload has no request counters: {requests_info}")
        return Quota(current=current, limit_day=limit_day)


def build_source(settings: Settings) -> ApiFootballSource:
    """
    Select the backing provider from settings.provider.
    """
    if settings.provider == "api_sports":
        client = FootballApiClient(
            base_url=settings.api_football_base_url,
            api_key=settings.api_football_key,
            requests_per_minute=settings.requests_per_minute,
        )
        return ApiFootballSource(client, season=settings.api_season, has_quota=True)
    if settings.provider == "mirror":
        client = FootballApiClient(
            base_url=settings.mirror_base_url,
            requests_per_minute=settings.requests_per_minute,
        )
        return ApiFootballSource(client, season=settings.api_season, has_quota=False)
    raise ValueError(f"Unknown provider {settings.provider!r}; expected one of {PROVIDERS}")
