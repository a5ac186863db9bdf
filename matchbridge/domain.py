from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Dict, Optional, Union

NOT_STARTED = "NS"
FULL_TIME = "FT"

FINISHED = "finished"
PENDING = "pending"


@dataclass(frozen=True)
class Fixture:
    external_id: Union[int, str]
    home_team: str
    away_team: str
    match_time: int
    status: str
    league_id: Optional[int] = None

    @property
    def is_actionable(self) -> bool:
        return self.status == NOT_STARTED

    def to_dict(self) -> Dict:
        return asdict(self)


@dataclass(frozen=True)
class ScoreResult:
    status: str
    home_score: Optional[int] = None
    away_score: Optional[int] = None

    @property
    def is_finished(self) -> bool:
        return self.status == FINISHED

    @classmethod
    def pending(cls) -> "ScoreResult":
        return cls(status=PENDING)

    @classmethod
    def finished(cls, home_score: int, away_score: int) -> "ScoreResult":
        return cls(status=FINISHED, home_score=home_score, away_score=away_score)


@dataclass(frozen=True)
class OnChainMatch:
    id: int
    home: str
    away: str
    match_time: int
    outcome: int
    exists: bool
    deleted: bool
    external_match_id: str

    @property
    def is_open(self) -> bool:
        """Valid and not yet settled."""
        return self.exists and not self.deleted and self.outcome == 0

    @property
    def is_terminal(self) -> bool:
        return not self.is_open

    def settleable_at(self, grace_seconds: int) -> int:
        return self.match_time + grace_seconds


@dataclass(frozen=True)
class Quota:
    current: int
    limit_day: int

    @property
    def remaining(self) -> int:
        return max(self.limit_day - self.current, 0)
