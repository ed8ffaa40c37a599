from __future__ import annotations

import logging
import time
from typing import Callable

from stocknotifier.domain.models import ClockOffset, ResponseEnvelope

logger = logging.getLogger(__name__)

DEFAULT_TIME_TTL_MS = 5 * 60 * 1000


def _now_ms() -> int:
    return int(time.time() * 1000)


class ClockSynchronizer:
    """
    Tracks the offset between the local clock and the exchange server clock.

    The offset is refreshed at most once per TTL. A refresh is best-effort: if it fails for any
    reason the previous offset (or none) is kept and the failure is only logged, so order
    placement never blocks on time sync.
    """

    def __init__(
        self,
        fetch_server_time: Callable[[], ResponseEnvelope],
        *,
        ttl_ms: int = DEFAULT_TIME_TTL_MS,
        now_ms: Callable[[], int] = _now_ms,
    ) -> None:
        self._fetch_server_time = fetch_server_time
        self.ttl_ms = int(ttl_ms)
        self._now_ms = now_ms
        self._offset: ClockOffset | None = None

    @property
    def offset_ms(self) -> int:
        return self._offset.offset_ms if self._offset is not None else 0

    @property
    def last_refresh_ms(self) -> int | None:
        return self._offset.refreshed_at_ms if self._offset is not None else None

    def is_fresh(self) -> bool:
        if self._offset is None:
            return False
        return self._offset.age_ms(self._now_ms()) < self.ttl_ms

    def ensure_fresh(self) -> None:
        if self.is_fresh():
            return
        try:
            resp = self._fetch_server_time()
        except Exception as e:
            logger.warning(f"Server time sync failed: {type(e).__name__}: {e}")
            return
        received_at = self._now_ms()

        if resp.status != 200:
            logger.warning(f"Server time sync failed: HTTP {resp.status}")
            return
        data = resp.data
        server_time = data.get("serverTime") if isinstance(data, dict) else None
        if isinstance(server_time, bool) or not isinstance(server_time, (int, float)):
            logger.warning(f"Server time sync failed: invalid serverTime payload {data!r:.200}")
            return

        self._offset = ClockOffset(offset_ms=int(server_time) - received_at, refreshed_at_ms=received_at)
        logger.debug(f"Server time offset refreshed: {self._offset.offset_ms}ms")

    def current_adjusted_time(self) -> int:
        return self._now_ms() + self.offset_ms
