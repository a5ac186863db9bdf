from __future__ import annotations

import logging
import time
from datetime import date
from typing import Dict, List, Optional

import requests

from .errors import SourceUnavailable

log = logging.getLogger(__name__)


class RateLimiter:
    """
    Simple rate limiter to respect per-minute caps.
    """

    def __init__(self, requests_per_minute: int) -> None:
        self.min_interval = 60.0 / float(requests_per_minute) if requests_per_minute > 0 else 0.0
        self._last_ts = 0.0

    def wait(self) -> None:
        now = time.time()
        delta = now - self._last_ts
        sleep_for = self.min_interval - delta
        if sleep_for > 0:
            log.debug("Rate limiter sleeping %.2fs", sleep_for)
            time.sleep(sleep_for)
        self._last_ts = time.time()


class FootballApiClient:
    """
    API-Football (api-sports v3) client. Works against the keyed host and
    the unauthenticated mirror; the mirror simply gets no key headers.
    """

    def __init__(
        self,
        base_url: str = "https://v3.football.api-sports.io",
        api_key: Optional[str] = None,
        requests_per_minute: int = 30,
        timeout: int = 20,
        session: Optional[requests.Session] = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.headers.update({"Accept": "application/json"})
        if api_key:
            host = self.base_url.split("://", 1)[-1].split("/", 1)[0]
            self.session.headers.update(
                {
                    "x-apisports-key": api_key,
                    "x-rapidapi-key": api_key,
                    "x-rapidapi-host": host,
                }
            )
        self.rate_limiter = RateLimiter(requests_per_minute=requests_per_minute)

    def _request(self, path: str, params: Optional[Dict[str, object]] = None) -> Dict:
        url = f"{self.base_url}/{path.lstrip('/')}"
        self.rate_limiter.wait()
        try:
            response = self.session.get(url, params=params or {}, timeout=self.timeout)
        except requests.RequestException as exc:
            raise SourceUnavailable(f"Network error for {url}: {exc}") from exc
        if not response.ok:
            raise SourceUnavailable(
                f"API-Football request failed ({response.status_code}): {response.text[:200]}"
            )
        try:
            payload = response.json()
        except ValueError as exc:
            raise SourceUnavailable(
                f"Invalid JSON in response for {url}: {response.text[:200]}"
            ) from exc
        if not isinstance(payload, dict):
            raise SourceUnavailable(f"Unexpected payload type for {url}: {type(payload).__name__}")
        errors = payload.get("errors")
        if errors:
            # api-sports reports quota/auth problems with a 200 and an errors field
            raise SourceUnavailable(f"API-Football errors for {url}: {errors}")
        return payload

    def _response(self, path: str, params: Optional[Dict[str, object]] = None):
        payload = self._request(path, params=params)
        if "response" not in payload:
            raise SourceUnavailable(
                f"No response field for {path}. Possible API limit or blocked request."
            )
        return payload["response"]

    def get_fixtures(
        self,
        league_id: int,
        date_from: date,
        date_to: date,
        season: Optional[int] = None,
    ) -> List[Dict]:
        params: Dict[str, object] = {
            "league": league_id,
            "from": date_from.isoformat(),
            "to": date_to.isoformat(),
        }
        if season is not None:
            params["season"] = season
        rows = self._response("fixtures", params=params)
        if not isinstance(rows, list):
            raise SourceUnavailable(f"Fixture list for league {league_id} is not a list")
        return rows

    def get_fixture(self, fixture_id) -> Optional[Dict]:
        rows = self._response("fixtures", params={"id": fixture_id})
        if isinstance(rows, list):
            return rows[0] if rows else None
        if isinstance(rows, dict):
            return rows or None
        return None

    def get_status(self) -> Dict:
        """
        Account status (plan, daily request counters). Keyed host only.
        """
        status = self._response("status")
        if isinstance(status, list):
            status = status[0] if status else {}
        if not isinstance(status, dict):
            raise SourceUnavailable("Malformed status payload")
        return status
