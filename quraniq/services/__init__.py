"""
Services package for the QuranIQ group leaderboard core.

Async services over a session factory. Every public method resolves to a
value, None or a success flag; errors never escape a service.
"""

from .base import BaseService
from .leaderboard_cache import LeaderboardCache

__all__ = ['BaseService', 'LeaderboardCache']
