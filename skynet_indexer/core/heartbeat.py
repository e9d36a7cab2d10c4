"""
Heartbeat - runs periodic maintenance tasks (the pending cache sweep) on a
background thread.
"""

import threading
import time
from typing import Callable, Dict, Optional

from ..util.logging import logger


class Heartbeat:
    """Cooperative scheduler for periodic tasks."""

    def __init__(self, tick_sec: float = 1.0):
        self.tick_sec = tick_sec
        self.tasks: Dict[str, Dict] = {}  # task_name -> {func, interval, last_run}
        self._shutdown_event = threading.Event()
        self._thread: Optional[threading.Thread] = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def register_task(self, name: str, interval_sec: int, func: Callable):
        """
        Register a task to be executed periodically.

        Args:
            name: Unique task identifier
            interval_sec: How often to run this task in seconds
            func: Function to call (should be fast and not block)
        """
        if not callable(func):
            raise ValueError(f"Task function must be callable: {func}")

        if interval_sec < 1:
            raise ValueError(f"Interval must be >= 1 second: {interval_sec}")

        self.tasks[name] = {
            "func": func,
            "interval": interval_sec,
            "last_run": None
        }
        logger.info(f"Registered heartbeat task '{name}' (every {interval_sec}s)")

    def unregister_task(self, name: str):
        """Remove a task from the registry."""
        self.tasks.pop(name, None)

    def list_tasks(self):
        """Return list of registered task names."""
        return list(self.tasks.keys())

    def should_run_task(self, task_info: Dict, now: float = None) -> bool:
        """Check if a task should run this cycle."""
        if task_info["last_run"] is None:
            return False  # First run happens one interval after start

        if now is None:
            now = time.monotonic()
        return now - task_info["last_run"] >= task_info["interval"]

    def run_pending(self, now: float = None) -> int:
        """Run every due task once; returns the number of tasks executed."""
        if now is None:
            now = time.monotonic()

        executed = 0
        for name, task_info in list(self.tasks.items()):
            if task_info["last_run"] is None:
                task_info["last_run"] = now
                continue
            if not self.should_run_task(task_info, now):
                continue

            start_time = time.monotonic()
            try:
                task_info["func"]()
                executed += 1
            except Exception as e:
                # Error isolation - log error but keep the loop alive
                logger.log_operation(f"heartbeat.{name}", "failed", {"error": str(e)})
            finally:
                task_info["last_run"] = now
                duration_ms = round((time.monotonic() - start_time) * 1000, 2)
                logger.log_debug(f"heartbeat task '{name}' ran in {duration_ms}ms")

        return executed

    def start(self):
        """Start the heartbeat loop on a daemon thread."""
        if self.running:
            raise RuntimeError("Heartbeat already running")

        self._shutdown_event.clear()
        self._thread = threading.Thread(target=self._loop, name="skynet-heartbeat", daemon=True)
        self._thread.start()
        logger.info(f"Heartbeat started with tasks: {self.list_tasks()}")

    def stop(self, timeout: float = 5.0):
        """Stop the heartbeat loop gracefully."""
        if not self.running:
            return

        self._shutdown_event.set()
        self._thread.join(timeout)
        self._thread = None
        logger.info("Heartbeat stopped")

    def get_status(self):
        """Return current heartbeat status for monitoring."""
        return {
            "status": "running" if self.running else "stopped",
            "tasks": {
                name: {
                    "interval_sec": info["interval"],
                    "last_run": info["last_run"],
                    "next_run": info["last_run"] + info["interval"] if info["last_run"] else None
                }
                for name, info in self.tasks.items()
            }
        }

    def _loop(self):
        while not self._shutdown_event.is_set():
            self.run_pending()
            self._shutdown_event.wait(self.tick_sec)
