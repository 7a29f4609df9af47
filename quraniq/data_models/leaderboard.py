"""
Leaderboard data models.

Provides immutable data transfer objects for the derived group roster. These
are recomputed per view and never stored.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import List, Optional, Tuple

from quraniq.constants import ScoreConstants


@dataclass(frozen=True)
class ModeScores:
    """One integer per game mode."""
    connections: int = 0
    harf: int = 0
    deduction: int = 0
    scramble: int = 0
    juz: int = 0
    
    def get(self, mode: str) -> int:
        return getattr(self, mode)
    
    def max_with(self, other: "ModeScores") -> "ModeScores":
        """Field-wise maximum, each mode independently."""
        return ModeScores(**{
            mode: max(self.get(mode), other.get(mode))
            for mode in ScoreConstants.SCORE_FIELDS
        })
    
    @property
    def total(self) -> int:
        return sum(self.get(mode) for mode in ScoreConstants.SCORE_FIELDS)


@dataclass(frozen=True)
class RosterEntry:
    """Single resolved player row in a group leaderboard."""
    uid: str
    display_name: str
    today_total: int = 0
    today_scores: ModeScores = field(default_factory=ModeScores)
    period_total: int = 0
    days_played: int = 0
    streak: int = 0
    all_time_scores: ModeScores = field(default_factory=ModeScores)
    verses_explored: int = 0
    quran_percent: float = 0.0
    is_me: bool = False


@dataclass(frozen=True)
class Badge:
    """Top scorer in one game mode under one sort context."""
    uid: str
    mode: str
    icon: str
    label: str
    context: str  # "today" | "overall"


@dataclass(frozen=True)
class GroupLeaderboard:
    """Sorted, badge-annotated roster for one group."""
    group_code: str
    sort_by: str
    entries: Tuple[RosterEntry, ...]
    badges: Tuple[Badge, ...] = ()
    generated_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    
    def badges_for(self, uid: str) -> List[Badge]:
        return [b for b in self.badges if b.uid == uid]
    
    def entry_for(self, uid: str) -> Optional[RosterEntry]:
        for entry in self.entries:
            if entry.uid == uid:
                return entry
        return None
