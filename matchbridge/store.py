from __future__ import annotations

import json
import logging
import os
import socket
from datetime import datetime
from typing import Any, Optional

from sqlalchemy.orm import Session

from .models import SyncState

log = logging.getLogger(__name__)

RUN_LOCK_KEY = "run.lock"
LOW_WATER_KEY = "settlement.low_water"


class StateStore:
    """
    Key-value rows in ``sync_state``. Backs the front-end snapshot, the
    run-lock, and the settlement low-water mark.
    """

    def __init__(self, session: Session) -> None:
        self.session = session

    def get(self, key: str) -> Optional[str]:
        row = self.session.get(SyncState, key)
        return row.value if row else None

    def put(self, key: str, value: str) -> None:
        row = self.session.get(SyncState, key)
        if row:
            row.value = value
            row.updated_at = datetime.utcnow()
        else:
            self.session.add(SyncState(key=key, value=value, updated_at=datetime.utcnow()))
        self.session.commit()

    def delete(self, key: str) -> None:
        row = self.session.get(SyncState, key)
        if row:
            self.session.delete(row)
            self.session.commit()

    def get_json(self, key: str) -> Optional[Any]:
        raw = self.get(key)
        if raw is None:
            return None
        try:
            return json.loads(raw)
        except ValueError:
            log.warning("Stored value for %s is not JSON", key)
            return None

    def put_json(self, key: str, value: Any) -> None:
        self.put(key, json.dumps(value, sort_keys=True))

    # --- run lock ---
    def acquire_lock(self, ttl_seconds: int, now: Optional[datetime] = None) -> bool:
        """
        Take the run lock unless another holder took it less than
        ``ttl_seconds`` ago.
        """
        now = now or datetime.utcnow()
        row = self.session.get(SyncState, RUN_LOCK_KEY)
        if row and row.updated_at and (now - row.updated_at).total_seconds() < ttl_seconds:
            log.warning("Run lock held by %s since %s", row.value, row.updated_at)
            return False
        if row:
            log.warning("Breaking stale run lock held by %s since %s", row.value, row.updated_at)
            self.session.delete(row)
            self.session.flush()
        self.session.add(SyncState(key=RUN_LOCK_KEY, value=_holder(), updated_at=now))
        self.session.commit()
        return True

    def release_lock(self) -> None:
        self.delete(RUN_LOCK_KEY)

    # --- settlement cursor ---
    def low_water(self) -> int:
        raw = self.get(LOW_WATER_KEY)
        try:
            return max(int(raw), 1) if raw is not None else 1
        except ValueError:
            return 1

    def set_low_water(self, match_id: int) -> None:
        self.put(LOW_WATER_KEY, str(max(match_id, 1)))


def _holder() -> str:
    return f"{socket.gethostname()}:{os.getpid()}"
