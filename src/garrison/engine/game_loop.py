"""Completion sweep loop — moves finished jobs into their cities.

Runs ``QueueService.complete_due`` for every stored city once per
``sweep_interval_s``. A city whose sweep conflicts with a concurrent
write is skipped and picked up again on the next tick.
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import TYPE_CHECKING

from garrison.util.errors import Conflict, NotFound

if TYPE_CHECKING:
    from garrison.engine.queue_service import QueueService
    from garrison.loaders.game_config_loader import GameConfig
    from garrison.persistence.database import CityStore

log = logging.getLogger(__name__)


class GameLoop:
    """The periodic queue sweep.

    Args:
        store: City store (used to enumerate cities).
        queue_service: Service performing the per-city sweep.
    """

    def __init__(
        self,
        store: CityStore,
        queue_service: QueueService,
        game_config: GameConfig | None = None,
    ) -> None:
        self._store = store
        self._queues = queue_service
        self._running = False
        self._step_interval = game_config.sweep_interval_s if game_config else 1.0

        # --- Monitoring counters ---
        self.tick_count: int = 0
        self.started_at: float = 0.0
        self.completed_total: int = 0
        self.conflicts_total: int = 0

    async def run(self) -> None:
        """Start the loop. Runs until stop() is called."""
        self._running = True
        self.started_at = time.monotonic()
        while self._running:
            await self.step()
            self.tick_count += 1
            await asyncio.sleep(self._step_interval)

    @property
    def uptime_seconds(self) -> float:
        """Seconds since the loop started."""
        if self.started_at == 0.0:
            return 0.0
        return time.monotonic() - self.started_at

    @property
    def is_running(self) -> bool:
        return self._running

    def stop(self) -> None:
        """Signal the loop to stop."""
        self._running = False

    async def step(self) -> int:
        """Sweep every city once. Returns the number of completed jobs."""
        completed = 0
        for cid in await self._store.list_cids():
            try:
                completed += len(await self._queues.complete_due(cid))
            except Conflict:
                self.conflicts_total += 1
                log.debug("Sweep of city %d conflicted, retrying next tick", cid)
            except NotFound:
                log.debug("City %d vanished during sweep", cid)
        self.completed_total += completed
        return completed
