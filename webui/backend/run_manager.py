"""Run lifecycle management: submit, cancel, status, SSE streaming."""
from __future__ import annotations

import asyncio
import logging
import threading
import time
import uuid
from typing import AsyncIterator, Callable

from mediaflow.adapters import AdapterRegistry, build_registry
from mediaflow.config import Config
from mediaflow.executor import PlanExecutor

from .models import RunRequest, RunStatus

log = logging.getLogger(__name__)

# (run_id, event dict) -> None; e.g. a task store mirroring step status
RunObserver = Callable[[str, dict], None]

_FINAL_STATES = {"success": "done", "canceled": "cancelled", "error": "failed"}

# Finished runs kept for status queries and stream replay
MAX_FINISHED_RUNS = 100


class RunManager:
    def __init__(
        self,
        config_loader: Callable[[], Config] = Config.load,
        registry_factory: Callable[[Config, bool], AdapterRegistry] = build_registry,
        max_finished_runs: int = MAX_FINISHED_RUNS,
    ) -> None:
        self._runs: dict[str, dict] = {}
        self._lock = threading.Lock()
        self._observers: list[RunObserver] = []
        self._config_loader = config_loader
        self._registry_factory = registry_factory
        self._max_finished_runs = max_finished_runs

    def add_observer(self, observer: RunObserver) -> None:
        self._observers.append(observer)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def submit(self, request: RunRequest) -> str:
        """Start a run in a background thread. Returns the run_id immediately.

        Raises ValueError for an unknown start step, before any thread starts.
        """
        config = self._config_loader()
        executor = PlanExecutor(self._registry_factory(config, request.use_test_mode), config)
        events = executor.execute(
            request.plan,
            request.step_configs,
            request.previous_outputs,
            start_step_id=request.start_step_id,
        )

        run_id = str(uuid.uuid4())[:8]
        with self._lock:
            self._evict_finished()
            self._runs[run_id] = {
                "state": "queued",
                "started_at": None,
                "finished_at": None,
                "error": None,
                "events": [],
                "_subscribers": [],
                "_executor": executor,
            }

        thread = threading.Thread(
            target=self._run,
            args=(run_id, events),
            daemon=True,
        )
        thread.start()
        return run_id

    def cancel(self, run_id: str) -> bool:
        run = self._runs.get(run_id)
        if not run:
            return False
        run["_executor"].cancel()
        if run["state"] in ("queued", "running"):
            run["state"] = "cancelled"
        return True

    def status(self, run_id: str) -> RunStatus | None:
        run = self._runs.get(run_id)
        if not run:
            return None
        executor: PlanExecutor = run["_executor"]
        return RunStatus(
            run_id=run_id,
            state=run["state"],
            started_at=run["started_at"],
            finished_at=run["finished_at"],
            step_states=dict(executor.states),
            outputs=dict(executor.outputs),
            error=run["error"],
        )

    def events(self, run_id: str) -> list[dict]:
        run = self._runs.get(run_id)
        return list(run["events"]) if run else []

    async def stream(self, run_id: str) -> AsyncIterator[dict]:
        """Yield event dicts from the start of the run until ``done``.

        Every subscriber gets the full history, so reconnecting after the run
        finished replays it and ends.
        """
        run = self._runs.get(run_id)
        if run is None:
            return
        subscriber = (asyncio.get_running_loop(), asyncio.Queue())
        with self._lock:
            history = list(run["events"])
            finished = bool(history) and history[-1]["type"] == "done"
            if not finished:
                run["_subscribers"].append(subscriber)
        try:
            for msg in history:
                yield msg
            if finished:
                return
            queue = subscriber[1]
            while True:
                msg = await queue.get()
                yield msg
                if msg["type"] == "done":
                    break
        finally:
            with self._lock:
                if subscriber in run["_subscribers"]:
                    run["_subscribers"].remove(subscriber)

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _run(self, run_id: str, events) -> None:
        run = self._runs[run_id]
        if run["state"] == "queued":
            run["state"] = "running"
        run["started_at"] = time.time()
        try:
            for event in events:
                msg = event.to_dict()
                if msg["type"] == "done":
                    run["finished_at"] = time.time()
                    run["error"] = msg.get("error") if msg["status"] == "error" else None
                self._publish(run_id, run, msg)
                # Terminal state only once every subscriber and observer has the done event
                if msg["type"] == "done":
                    run["state"] = _FINAL_STATES.get(msg["status"], "failed")

        except Exception as exc:
            log.exception("Run %s failed", run_id)
            run["error"] = str(exc)
            run["finished_at"] = time.time()
            self._publish(run_id, run, {"type": "done", "status": "error", "outputs": {}, "error": str(exc)})
            run["state"] = "failed"

    def _publish(self, run_id: str, run: dict, msg: dict) -> None:
        with self._lock:
            run["events"].append(msg)
            for subscriber in list(run["_subscribers"]):
                loop, queue = subscriber
                try:
                    loop.call_soon_threadsafe(queue.put_nowait, msg)
                except RuntimeError:
                    # subscriber's loop is gone
                    run["_subscribers"].remove(subscriber)
        self._notify(run_id, msg)

    def _notify(self, run_id: str, msg: dict) -> None:
        for observer in self._observers:
            try:
                observer(run_id, msg)
            except Exception:
                log.exception("Run observer failed for %s", run_id)

    def _evict_finished(self) -> None:
        finished = [rid for rid, run in self._runs.items() if run["finished_at"] is not None]
        for rid in finished[:max(0, len(finished) - self._max_finished_runs)]:
            log.debug("Evicting finished run %s", rid)
            del self._runs[rid]


# Singleton
run_manager = RunManager()
