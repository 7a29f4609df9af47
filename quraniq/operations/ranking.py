"""
Ranking & Badge Calculator

Sorts a resolved roster by one of the selectable keys and awards one
top-scorer badge per game mode under the active sort context.
"""

from typing import Callable, Dict, List, Sequence, Tuple

from quraniq.constants import BadgeConstants, SortConstants
from quraniq.data_models.leaderboard import Badge, RosterEntry

_SORT_KEYS: Dict[str, Callable[[RosterEntry], Tuple[float, float, float]]] = {
    SortConstants.TOTAL: lambda e: (e.period_total, e.today_total, e.quran_percent or 0),
    SortConstants.TODAY: lambda e: (e.today_total, e.period_total, e.quran_percent or 0),
    SortConstants.QURAN: lambda e: (e.quran_percent or 0, e.period_total, e.today_total),
}


def validate_sort_by(sort_by: str) -> bool:
    """Validate sort_by parameter against allowed values."""
    return sort_by in SortConstants.ALLOWED


def sort_roster(roster: Sequence[RosterEntry], sort_by: str = SortConstants.TOTAL) -> List[RosterEntry]:
    """
    Order the roster descending by the sort key and its tie-breaks.
    
    The sort is stable, so entries tied on all three fields keep their
    incoming relative order.
    """
    if not validate_sort_by(sort_by):
        raise ValueError(f"Invalid sort_by value: {sort_by}")
    key = _SORT_KEYS[sort_by]
    return sorted(roster, key=key, reverse=True)


def badge_context(sort_by: str) -> str:
    return 'today' if sort_by == SortConstants.TODAY else 'overall'


def calculate_badges(sorted_roster: Sequence[RosterEntry], sort_by: str = SortConstants.TOTAL) -> List[Badge]:
    """
    Award each game mode's badge to its top scorer.
    
    Under the 'today' sort the primary column is today's per-mode score and
    the all-time per-mode total breaks ties; every other sort uses the
    reverse. Full ties go to whoever is ranked higher. No badge is awarded
    for a mode where nobody scored.
    """
    use_today = sort_by == SortConstants.TODAY
    context = badge_context(sort_by)
    badges = []
    
    for mode, icon, label in BadgeConstants.GAMES:
        top_score = 0
        top_tiebreaker = 0
        top_uid = None
        
        for entry in sorted_roster:
            today_score = entry.today_scores.get(mode)
            all_time_score = entry.all_time_scores.get(mode)
            primary, tiebreaker = (today_score, all_time_score) if use_today else (all_time_score, today_score)
            
            if primary > top_score or (primary == top_score and primary > 0 and tiebreaker > top_tiebreaker):
                top_score = primary
                top_tiebreaker = tiebreaker
                top_uid = entry.uid
        
        if top_uid is not None and top_score > 0:
            badges.append(Badge(uid=top_uid, mode=mode, icon=icon, label=label, context=context))
    
    return badges
