import threading
from collections import Counter


class TagCounter:
    """Number of documents per tag, filled concurrently by parse workers."""

    def __init__(self):
        self._counts = Counter()
        self._lock = threading.Lock()

    def add(self, tags):
        with self._lock:
            self._counts.update(tags)

    def most_common(self):
        with self._lock:
            return sorted(self._counts.items(), key=lambda item: (-item[1], item[0]))

    def log_stats(self, logger):
        logger.info("Tags counts:")
        for tag, count in self.most_common():
            logger.info(f"  {tag}: {count}")
