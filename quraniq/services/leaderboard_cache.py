"""
TTL cache for group rosters.

Entries expire after the configured TTL; any mutating action on a group
invalidates its entry explicitly. There is no cross-client invalidation.
"""

import asyncio
import logging
import time
from typing import Dict, List, Optional, Tuple

from quraniq.config import Config
from quraniq.data_models.leaderboard import RosterEntry

logger = logging.getLogger(__name__)


class LeaderboardCache:
    """Per-group roster cache with TTL-based expiry."""
    
    def __init__(self, ttl: Optional[float] = None, max_size: Optional[int] = None, clock=time.monotonic):
        self._ttl = Config.LEADERBOARD_CACHE_TTL if ttl is None else ttl
        self._max_size = max_size or Config.LEADERBOARD_CACHE_MAX_SIZE
        self._clock = clock
        self._cache: Dict[str, Tuple[float, List[RosterEntry]]] = {}  # group_code -> (timestamp, roster)
        self._lock = asyncio.Lock()
    
    async def get(self, group_code: str) -> Optional[List[RosterEntry]]:
        """Return the cached roster if still fresh."""
        async with self._lock:
            cached = self._cache.get(group_code)
            if cached is None:
                return None
            timestamp, roster = cached
            if self._clock() - timestamp >= self._ttl:
                self._cache.pop(group_code, None)
                return None
            logger.debug(f"Cache hit for group {group_code}")
            return list(roster)
    
    async def set(self, group_code: str, roster: List[RosterEntry]):
        async with self._lock:
            self._cache[group_code] = (self._clock(), list(roster))
            if len(self._cache) > self._max_size:
                self._cleanup()
    
    def invalidate(self, group_code: str):
        """Invalidate cache for a specific group."""
        if self._cache.pop(group_code, None) is not None:
            logger.debug(f"Invalidated leaderboard cache for group {group_code}")
    
    def invalidate_all(self):
        """Clear entire cache."""
        self._cache.clear()
    
    def __contains__(self, group_code: str) -> bool:
        return group_code in self._cache
    
    def _cleanup(self):
        """Remove oldest cache entries to stay within size limit."""
        sorted_items = sorted(self._cache.items(), key=lambda x: x[1][0], reverse=True)
        self._cache = dict(sorted_items[:self._max_size])
        logger.debug(f"Cleaned leaderboard cache, kept {len(self._cache)} entries")
