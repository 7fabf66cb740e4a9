"""SolverHost — runs a search off the caller's thread and streams events.

Protocol
--------
``start(level, eval_options, search_options)`` launches one search on a
daemon thread and returns a job id.  While it runs the host publishes on
its EventBus:

    solver_progress   {job_id, attempts, best_score, elapsed_ms, best_program, best_trace}
    solver_result     {job_id, solved, best_program, best_score, attempts, ...}
    solver_error      {job_id, error}

``cancel()`` sets the search's cancel event and publishes a single
``solver_cancelled`` acknowledgement; no further events for that job are
published after it, even if the worker thread is still finishing its
current candidate.  Only one search runs at a time.

The result, cancel and error events are terminal.  A host built without a
bus gets one that pins them, so a slow listener loses progress frames
but never the end of the job.
"""

from __future__ import annotations

import threading
import uuid
from typing import Optional

from loguru import logger

from ..comms.event_bus import EventBus
from ..simulation.level import LevelDefinition
from .evaluate import EvalOptions
from .search import SearchOptions, SearchProgress, SearchResult, search


PROGRESS_EVENT = "solver_progress"
TERMINAL_EVENTS = ("solver_result", "solver_cancelled", "solver_error")
SOLVER_EVENTS = (PROGRESS_EVENT, *TERMINAL_EVENTS)


class SolverBusyError(RuntimeError):
    """A search is already running on this host."""


class SolverHost:
    """One background search at a time, events on an EventBus."""

    def __init__(self, event_bus: Optional[EventBus] = None) -> None:
        # terminal events must survive a listener that fell behind on progress
        self._event_bus = event_bus if event_bus is not None else EventBus(pinned=TERMINAL_EVENTS)
        self._lock = threading.Lock()
        self._thread: threading.Thread | None = None
        self._cancel: threading.Event | None = None
        self._job_id: str | None = None
        self._silenced: set[str] = set()
        self.last_progress: dict | None = None
        self.last_result: dict | None = None

    @property
    def event_bus(self) -> EventBus:
        return self._event_bus

    @property
    def job_id(self) -> str | None:
        return self._job_id

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    @property
    def silenced_jobs(self) -> frozenset[str]:
        """Cancelled jobs whose worker thread has not exited yet."""
        with self._lock:
            return frozenset(self._silenced)

    def start(
        self,
        level: LevelDefinition,
        eval_options: Optional[EvalOptions] = None,
        search_options: Optional[SearchOptions] = None,
    ) -> str:
        with self._lock:
            if self.is_running:
                raise SolverBusyError(f"Search {self._job_id} is still running")
            # nothing is running, so no earlier job can publish again
            self._silenced.clear()
            job_id = uuid.uuid4().hex[:8]
            cancel = threading.Event()
            self._job_id = job_id
            self._cancel = cancel
            self.last_progress = None
            self.last_result = None
            self._thread = threading.Thread(
                target=self._run,
                args=(job_id, level, eval_options, search_options, cancel),
                name=f"solver-{job_id}",
                daemon=True,
            )
            self._thread.start()
        logger.info(f"Solver job {job_id} started for {level.level_id or 'level'}")
        return job_id

    def cancel(self) -> bool:
        """Best-effort cancel.  Returns False if nothing was running."""
        with self._lock:
            if not self.is_running or self._cancel is None or self._job_id is None:
                return False
            job_id = self._job_id
            self._cancel.set()
            self._silenced.add(job_id)
        self._event_bus.publish("solver_cancelled", {"job_id": job_id})
        logger.info(f"Solver job {job_id} cancelled")
        return True

    def wait(self, timeout: float | None = None) -> bool:
        """Join the worker thread.  Returns True once no search is running."""
        thread = self._thread
        if thread is not None:
            thread.join(timeout)
        return not self.is_running

    def _publish(self, job_id: str, event_type: str, data: dict) -> None:
        with self._lock:
            if job_id in self._silenced:
                return
            self._event_bus.publish(event_type, {"job_id": job_id, **data})

    def _run(
        self,
        job_id: str,
        level: LevelDefinition,
        eval_options: Optional[EvalOptions],
        search_options: Optional[SearchOptions],
        cancel: threading.Event,
    ) -> None:
        def on_progress(progress: SearchProgress) -> None:
            payload = progress.to_dict()
            self.last_progress = payload
            self._publish(job_id, PROGRESS_EVENT, payload)

        try:
            try:
                result: SearchResult = search(
                    level,
                    options=search_options,
                    eval_options=eval_options,
                    on_progress=on_progress,
                    cancel_event=cancel,
                )
            except Exception as e:
                logger.error(f"Solver job {job_id} failed: {e}")
                self._publish(job_id, "solver_error", {"error": str(e)})
                return

            payload = result.to_dict()
            self.last_result = payload
            self._publish(job_id, "solver_result", payload)
            logger.info(f"Solver job {job_id} finished: solved={result.solved}")
        finally:
            # the job cannot publish any more, so it no longer needs silencing
            with self._lock:
                self._silenced.discard(job_id)
