"""
Score record data models.

Immutable value objects for one identity's per-date crescent scores, as read
from or written to the score store.
"""

from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Any, Dict, Mapping, Optional

from quraniq.constants import ScoreConstants


@dataclass(frozen=True)
class ScoreEntry:
    """Per-mode crescents for one puzzle date. `total` is always the sum of the modes."""
    connections: int = 0
    harf: int = 0
    deduction: int = 0
    scramble: int = 0
    juz: int = 0
    streak: int = 0
    submitted_at: Optional[datetime] = None
    
    @property
    def total(self) -> int:
        return sum(getattr(self, f) for f in ScoreConstants.SCORE_FIELDS)
    
    def get(self, score_field: str) -> int:
        return getattr(self, score_field)
    
    def ratcheted(self, score_field: str, value: int) -> "ScoreEntry":
        """Return a copy where `score_field` is raised to `value`, never lowered."""
        if score_field not in ScoreConstants.SCORE_FIELDS:
            raise ValueError(f"Unknown score field: {score_field}")
        return replace(self, **{score_field: max(self.get(score_field), value)})
    
    def as_dict(self) -> Dict[str, int]:
        data = {f: self.get(f) for f in ScoreConstants.SCORE_FIELDS}
        data['total'] = self.total
        data['streak'] = self.streak
        return data
    
    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "ScoreEntry":
        """Build from a loosely typed mapping; missing or null modes count as 0."""
        values = {f: int(data.get(f) or 0) for f in ScoreConstants.SCORE_FIELDS}
        return cls(streak=int(data.get('streak') or 0), **values)
    
    @classmethod
    def from_row(cls, row) -> "ScoreEntry":
        """Build from a DailyScore row."""
        values = {f: getattr(row, f) or 0 for f in ScoreConstants.SCORE_FIELDS}
        return cls(streak=row.streak or 0, submitted_at=row.submitted_at, **values)


@dataclass(frozen=True)
class ScoreRecord:
    """All retained dates for one identity."""
    uid: str
    entries: Dict[str, ScoreEntry] = field(default_factory=dict)
    
    def merged_with(self, other: "ScoreRecord") -> "ScoreRecord":
        """Per date, keep whichever entry has the higher total (ties keep ours)."""
        merged = dict(self.entries)
        for puzzle_date, theirs in other.entries.items():
            ours = merged.get(puzzle_date)
            if ours is None or theirs.total > ours.total:
                merged[puzzle_date] = theirs
        return ScoreRecord(uid=self.uid, entries=merged)


@dataclass(frozen=True)
class PlayerSnapshot:
    """Everything the aggregator needs about one group member."""
    uid: str
    display_name: str
    scores: Dict[str, ScoreEntry] = field(default_factory=dict)
    verses_explored: int = 0
    quran_percent: float = 0.0
