"""
Score Aggregator

Reduces each group member's raw per-date score history into the summary
metrics the leaderboard ranks on. Pure functions only: no store access, and
each member is reduced independently of the others.
"""

from typing import Dict, Iterable, List, Optional

from quraniq.constants import ScoreConstants
from quraniq.data_models.leaderboard import ModeScores, RosterEntry
from quraniq.data_models.scores import PlayerSnapshot, ScoreEntry
from quraniq.utils.dates import previous_date_string


def compute_streak(scores: Dict[str, ScoreEntry], dates: List[str]) -> int:
    """
    Count consecutive played days backwards from the most recent date.
    
    `dates` must be sorted ascending. Counting stops at the first date with a
    zero total or at the first missing calendar day.
    """
    streak = 0
    for i in range(len(dates) - 1, -1, -1):
        entry = scores.get(dates[i])
        if entry is None or entry.total <= 0:
            break
        streak += 1
        if i > 0 and dates[i - 1] != previous_date_string(dates[i]):
            break
    return streak


def mode_scores_from_entry(entry: Optional[ScoreEntry]) -> ModeScores:
    if entry is None:
        return ModeScores()
    return ModeScores(**{mode: entry.get(mode) for mode in ScoreConstants.SCORE_FIELDS})


class ScoreAggregator:
    """Builds roster entries for one leaderboard render."""
    
    def __init__(self, today: str, cutoff_date: str):
        """
        Args:
            today: Canonical puzzle date for the "today" column
            cutoff_date: Dates before this are ignored for totals, streaks and badges
        """
        self.today = today
        self.cutoff_date = cutoff_date
    
    def build_entry(self, snapshot: PlayerSnapshot, self_uid: Optional[str] = None) -> RosterEntry:
        """Reduce one member's history into a RosterEntry."""
        scores = snapshot.scores
        today_entry = scores.get(self.today)
        
        dates = sorted(d for d in scores if d >= self.cutoff_date)
        period_total = 0
        days_played = 0
        all_time: Dict[str, int] = {mode: 0 for mode in ScoreConstants.SCORE_FIELDS}
        for puzzle_date in dates:
            entry = scores[puzzle_date]
            if entry.total > 0:
                period_total += entry.total
                days_played += 1
            for mode in ScoreConstants.SCORE_FIELDS:
                all_time[mode] += entry.get(mode)
        
        return RosterEntry(
            uid=snapshot.uid,
            display_name=snapshot.display_name,
            today_total=today_entry.total if today_entry else 0,
            today_scores=mode_scores_from_entry(today_entry),
            period_total=period_total,
            days_played=days_played,
            streak=compute_streak(scores, dates),
            all_time_scores=ModeScores(**all_time),
            verses_explored=snapshot.verses_explored or 0,
            quran_percent=snapshot.quran_percent or 0.0,
            is_me=snapshot.uid == self_uid,
        )
    
    def build_roster(
        self,
        snapshots: Iterable[Optional[PlayerSnapshot]],
        self_uid: Optional[str] = None
    ) -> List[RosterEntry]:
        """Build entries for every member whose fetch succeeded. Failed fetches (None) are dropped."""
        return [
            self.build_entry(snapshot, self_uid)
            for snapshot in snapshots
            if snapshot is not None
        ]
