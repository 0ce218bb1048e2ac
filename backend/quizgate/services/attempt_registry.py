"""Live attempt controllers of this process, keyed by attempt id.

A controller lives here from the moment its attempt row is created until it
is submitted or abandoned. Answers of a live attempt are held in memory only,
so a process restart drops them and leaves the attempt incomplete.
"""

from __future__ import annotations

import asyncio
import logging
import threading
from typing import Callable, Dict, Optional

from sqlalchemy.orm import Session

from quizgate.db.session import SessionLocal
from quizgate.services.attempt_controller import AttemptController
from quizgate.services.countdown import Countdown
from quizgate.services.quiz_store import store_scope

logger = logging.getLogger(__name__)


class AttemptRegistry:
    def __init__(self, session_factory: Callable[[], Session] = SessionLocal):
        self.session_factory = session_factory
        self._controllers: Dict[int, AttemptController] = {}
        self._countdowns: Dict[int, asyncio.Task] = {}
        self._lock = threading.Lock()

    def store_factory(self):
        return store_scope(self.session_factory)

    def new_controller(self) -> AttemptController:
        return AttemptController(self.store_factory)

    def register(self, controller: AttemptController) -> None:
        if controller.attempt_id is None:
            raise ValueError("controller has no attempt yet")
        with self._lock:
            self._controllers[int(controller.attempt_id)] = controller
        controller.add_finished_callback(self._forget)

    def get(self, attempt_id: int) -> Optional[AttemptController]:
        with self._lock:
            return self._controllers.get(int(attempt_id))

    def __len__(self) -> int:
        with self._lock:
            return len(self._controllers)

    def _forget(self, controller: AttemptController) -> None:
        attempt_id = int(controller.attempt_id)
        with self._lock:
            self._controllers.pop(attempt_id, None)
            task = self._countdowns.get(attempt_id)
        if task is not None and not task.done():
            # Completion may happen on a worker thread.
            task.get_loop().call_soon_threadsafe(task.cancel)

    # ------------------------------------------------------------------
    def start_countdown(self, controller: AttemptController, **countdown_kwargs) -> asyncio.Task:
        """Schedule the countdown of a registered controller on the running loop."""
        attempt_id = int(controller.attempt_id)
        task = asyncio.get_running_loop().create_task(
            Countdown(controller.tick, **countdown_kwargs).run(),
            name=f"attempt-countdown-{attempt_id}",
        )
        with self._lock:
            self._countdowns[attempt_id] = task
        task.add_done_callback(lambda t, aid=attempt_id: self._countdown_done(aid, t))
        return task

    def _countdown_done(self, attempt_id: int, task: asyncio.Task) -> None:
        with self._lock:
            if self._countdowns.get(attempt_id) is task:
                self._countdowns.pop(attempt_id, None)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error("countdown of attempt %s crashed", attempt_id, exc_info=exc)

    async def shutdown(self) -> None:
        with self._lock:
            tasks = list(self._countdowns.values())
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        with self._lock:
            live = list(self._controllers.values())
        for controller in live:
            controller.abandon()
        if live:
            logger.warning("shutdown dropped %s live attempt(s)", len(live))


registry = AttemptRegistry()


def get_registry() -> AttemptRegistry:
    return registry