"""
Bounded background work queue for compression and retention.
"""

import queue
import threading
from typing import Any, Callable, List, Optional

from .logging_config import get_logger

logger = get_logger(__name__)

_STOP = object()


class BackgroundWorker:
    """A fixed pool of daemon threads fed from a bounded queue.

    ``submit`` blocks while the queue is full. Task exceptions are logged and
    never propagate to the submitter.
    """

    def __init__(self, name: str = "rotalog", workers: int = 1, max_pending: int = 64):
        if workers < 1:
            raise ValueError("workers must be at least 1")
        self.name = name
        self._queue: queue.Queue = queue.Queue(maxsize=max_pending)
        self._threads: List[threading.Thread] = []
        self._pending = 0
        self._idle = threading.Condition()
        # Held across the stopped check and the enqueue so no task can land
        # behind the stop sentinels.
        self._submit_lock = threading.Lock()
        self._stopped = False

        for i in range(workers):
            thread = threading.Thread(target=self._run, name=f"{name}-worker-{i}", daemon=True)
            thread.start()
            self._threads.append(thread)

        logger.debug(f"Background worker {name} started with {workers} thread(s)")

    def submit(self, fn: Callable[..., Any], *args: Any) -> None:
        with self._submit_lock:
            with self._idle:
                if self._stopped:
                    raise RuntimeError(f"Background worker {self.name} is shut down")
                self._pending += 1
            self._queue.put((fn, args))

    def _run(self) -> None:
        while True:
            item = self._queue.get()
            try:
                if item is _STOP:
                    return
                fn, args = item
                try:
                    fn(*args)
                except Exception as e:
                    logger.error(f"Error in background task {getattr(fn, '__name__', fn)}: {e}")
                with self._idle:
                    self._pending -= 1
                    self._idle.notify_all()
            finally:
                self._queue.task_done()

    def owns_current_thread(self) -> bool:
        return threading.current_thread() in self._threads

    @property
    def pending(self) -> int:
        with self._idle:
            return self._pending

    def wait_idle(self, timeout: Optional[float] = None) -> bool:
        """Block until every submitted task has finished.

        Returns False if the timeout expired first.
        """
        with self._idle:
            return self._idle.wait_for(lambda: self._pending == 0, timeout=timeout)

    def shutdown(self, wait: bool = True, timeout: Optional[float] = None) -> None:
        """Stop accepting work; optionally drain the queue first."""
        with self._submit_lock:
            with self._idle:
                if self._stopped:
                    return
                self._stopped = True

            for _ in self._threads:
                self._queue.put(_STOP)

        if wait:
            for thread in self._threads:
                thread.join(timeout)

        logger.debug(f"Background worker {self.name} stopped")
