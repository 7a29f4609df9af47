"""
Canonical puzzle date handling.

Scores are keyed by the date embedded in the daily puzzle content, not the
wall-clock date, so a stale puzzle played after midnight UTC still lands on
the puzzle's own day.
"""

from datetime import date, datetime, timedelta, timezone
from typing import Optional


def utc_date_string(now: Optional[datetime] = None) -> str:
    """Return the UTC calendar date as YYYY-MM-DD."""
    now = now or datetime.now(timezone.utc)
    return now.astimezone(timezone.utc).strftime('%Y-%m-%d')


def previous_date_string(date_str: str) -> Optional[str]:
    """Return the day before an ISO date string, or None if it does not parse."""
    try:
        return (date.fromisoformat(date_str) - timedelta(days=1)).isoformat()
    except (TypeError, ValueError):
        return None


def is_valid_date_string(date_str: str) -> bool:
    try:
        date.fromisoformat(date_str)
        return True
    except (TypeError, ValueError):
        return False


class PuzzleCalendar:
    """Tracks the active puzzle date, falling back to the UTC date."""
    
    def __init__(self, active_puzzle_date: Optional[str] = None):
        self._active_puzzle_date = None
        if active_puzzle_date:
            self.set_active_puzzle_date(active_puzzle_date)
    
    def set_active_puzzle_date(self, puzzle_date: Optional[str]):
        """Record the date of the loaded puzzle. None clears it."""
        if puzzle_date is not None and not is_valid_date_string(puzzle_date):
            raise ValueError(f"Puzzle date must be YYYY-MM-DD, got {puzzle_date!r}")
        self._active_puzzle_date = puzzle_date
    
    @property
    def active_puzzle_date(self) -> Optional[str]:
        return self._active_puzzle_date
    
    def today(self) -> str:
        """Canonical 'today': the puzzle date when loaded, otherwise UTC today."""
        if self._active_puzzle_date:
            return self._active_puzzle_date
        return utc_date_string()
