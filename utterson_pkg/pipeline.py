"""
Bounded worker pool connecting the build stages.

Producers call ``submit`` until they are known to be finished, then the
owner calls ``close`` exactly once and ``join`` to wait for the workers to
drain the queue. Closing while a producer may still submit would drop work,
so the coordinator closes a downstream pool only after joining every
upstream pool that feeds it.
"""

import logging
import queue
import threading

_STOP = object()


class PoolClosedError(RuntimeError):
    """Raised when submitting to a pool that was already closed."""


class WorkerPool:
    def __init__(self, name, handler, workers=1, maxsize=0):
        self.name = name
        self.handler = handler
        self.workers = max(1, int(workers))
        self.queue = queue.Queue(maxsize=maxsize)
        self.logger = logging.getLogger(f'Utterson.{name}')
        self.handled = 0
        self.failed = 0
        self._closed = False
        self._lock = threading.Lock()
        self._threads = []

    def start(self):
        for i in range(self.workers):
            thread = threading.Thread(target=self._run, name=f'{self.name}-{i}', daemon=True)
            thread.start()
            self._threads.append(thread)
        self.logger.debug(f"Started {self.workers} {self.name} worker(s)")
        return self

    def submit(self, item):
        """Queue an item; blocks while the queue is full."""
        with self._lock:
            if self._closed:
                raise PoolClosedError(f"{self.name} pool is closed")
        self.queue.put(item)

    def close(self):
        """Signal that no more items will be submitted."""
        with self._lock:
            if self._closed:
                return
            self._closed = True
        for _ in self._threads:
            self.queue.put(_STOP)

    def join(self):
        """Wait until every queued item has been handled."""
        self.close()
        for thread in self._threads:
            thread.join()
        self.logger.debug(f"{self.name} pool finished: {self.handled} handled, {self.failed} failed")

    def _run(self):
        while True:
            item = self.queue.get()
            if item is _STOP:
                return
            try:
                self.handler(item)
                with self._lock:
                    self.handled += 1
            except Exception as e:
                with self._lock:
                    self.failed += 1
                self.logger.error(f"Error handling {item!r} in {self.name} pool: {e}")

    def __enter__(self):
        return self.start()

    def __exit__(self, exc_type, exc, tb):
        self.join()
        return False
