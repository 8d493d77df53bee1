"""
Cache utilities for BetPool
Provides an explicit, bounded-lifetime cache for upstream match results
"""

import logging

from betpool import cache

logger = logging.getLogger(__name__)

RESULTS_CACHE_KEY = "results:all"


class ResultsCache:
    """
    Explicit cache for upstream results, owned by the results client.

    Backed by the Flask-Caching extension, so entries expire on their own
    and a Redis backend shares them between workers. ``get`` returns None
    on a miss.
    """

    def __init__(self, backend=None, default_timeout=600):
        self.backend = backend or cache
        self.default_timeout = default_timeout

    def get(self, key):
        value = self.backend.get(key)
        if value is None:
            logger.debug(f"Results cache miss: {key}")
        else:
            logger.debug(f"Results cache hit: {key}")
        return value

    def put(self, key, value, expiry=None):
        timeout = self.default_timeout if expiry is None else expiry
        self.backend.set(key, value, timeout=timeout)
        logger.debug(f"Results cache set: {key} ({timeout}s)")
