from __future__ import annotations

from datetime import date
from typing import List, Sequence


def select_league(current: date, rotation: Sequence[int]) -> int:
    """
    Pick one league per day: Monday takes rotation[0], Tuesday rotation[1],
    wrapping around when the rotation is shorter than a week.
    """
    if not rotation:
        raise ValueError("League rotation is empty")
    return rotation[current.weekday() % len(rotation)]


def leagues_for_run(current: date, league_ids: Sequence[int], mode: str = "all") -> List[int]:
    if mode == "all":
        return list(league_ids)
    if mode == "rotate":
        return [select_league(current, league_ids)] if league_ids else []
    raise ValueError(f"Unknown league mode {mode!r}; expected 'all' or 'rotate'")
