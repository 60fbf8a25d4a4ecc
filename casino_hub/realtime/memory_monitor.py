"""
Memory monitoring for Casino Hub.

This module reads the process resident set size and reports when it
crosses the configured threshold, so the hub can shed history and force
a garbage collection pass before the host kills the process.
"""

import gc
import time
from typing import Any

import psutil

from ..structured_logging.enhanced_logging_config import get_logger

logger = get_logger(__name__)

_BYTES_PER_MB = 1024 * 1024


class MemoryMonitor:
    """
    Watch process RSS against a threshold in megabytes.

    The hub calls is_over_threshold() on a timer and performs its own trim;
    this class only measures and collects.
    """

    def __init__(self, threshold_mb: float = 380.0, process: psutil.Process | None = None):
        """
        Initialize the memory monitor.

        Args:
            threshold_mb: RSS above which cleanup is requested (default: 380)
            process: Process to inspect (default: the current process)
        """
        self.threshold_mb = threshold_mb
        self._process = process or psutil.Process()
        self.last_cleanup_time: float | None = None
        self.cleanup_count = 0

    def get_rss_mb(self) -> float:
        """
        Get resident set size of the process.

        Returns:
            float: RSS in megabytes, 0.0 if it cannot be read
        """
        try:
            return self._process.memory_info().rss / _BYTES_PER_MB
        except psutil.Error as e:
            logger.error("Error reading process memory", error=str(e))
            return 0.0

    def is_over_threshold(self) -> bool:
        rss_mb = self.get_rss_mb()
        if rss_mb > self.threshold_mb:
            logger.warning("Memory usage above threshold", rss_mb=round(rss_mb, 1), threshold_mb=self.threshold_mb)
            return True
        return False

    def get_memory_stats(self) -> dict[str, Any]:
        """
        Get detailed memory statistics.

        Returns:
            dict: RSS, VMS, percentage and threshold, empty if unavailable
        """
        try:
            memory_info = self._process.memory_info()
            return {
                "rss_mb": round(memory_info.rss / _BYTES_PER_MB, 1),
                "vms_mb": round(memory_info.vms / _BYTES_PER_MB, 1),
                "percent": round(self._process.memory_percent(), 2),
                "threshold_mb": self.threshold_mb,
                "cleanup_count": self.cleanup_count,
            }
        except psutil.Error as e:
            logger.error("Error getting memory stats", error=str(e))
            return {}

    def force_garbage_collection(self) -> int:
        """Force garbage collection and record the cleanup. Returns the number of objects collected."""
        collected = gc.collect()
        self.last_cleanup_time = time.time()
        self.cleanup_count += 1
        logger.debug("Forced garbage collection completed", collected=collected)
        return collected
