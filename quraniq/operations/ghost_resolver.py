"""
Ghost Deduplication Resolver

A player who loses local storage comes back under a new identity and
re-joins their groups, leaving the old identity behind as a "ghost" with the
same display name. The resolver folds every same-named entry into the
current client's entry so the player appears once.

Display-name equality is the only signal available, so two different people
sharing a name inside one group will also be merged.
"""

from dataclasses import dataclass, replace
from typing import List, Optional

from quraniq.data_models.leaderboard import RosterEntry


@dataclass(frozen=True)
class GhostResolution:
    """Roster with ghosts removed, plus the ghosts that need store cleanup."""
    roster: List[RosterEntry]
    me: Optional[RosterEntry]
    ghosts: List[RosterEntry]


def merge_ghost(me: RosterEntry, ghost: RosterEntry) -> RosterEntry:
    """
    Fold a ghost into the current player's entry by field-wise maximum.
    
    Today's total and per-mode scores move together, as do the exploration
    percentage and verse count. Idempotent: merging the same ghost twice
    gives the same entry.
    """
    updates = {}
    if ghost.period_total > me.period_total:
        updates['period_total'] = ghost.period_total
    if ghost.today_total > me.today_total:
        updates['today_total'] = ghost.today_total
        updates['today_scores'] = ghost.today_scores
    if (ghost.quran_percent or 0) > (me.quran_percent or 0):
        updates['quran_percent'] = ghost.quran_percent
        updates['verses_explored'] = ghost.verses_explored
    if ghost.streak > me.streak:
        updates['streak'] = ghost.streak
    all_time = me.all_time_scores.max_with(ghost.all_time_scores)
    if all_time != me.all_time_scores:
        updates['all_time_scores'] = all_time
    return replace(me, **updates) if updates else me


def find_ghosts(roster: List[RosterEntry], me: RosterEntry) -> List[RosterEntry]:
    return [
        entry for entry in roster
        if entry.uid != me.uid and entry.display_name == me.display_name
    ]


def resolve_ghosts(roster: List[RosterEntry], self_uid: Optional[str]) -> GhostResolution:
    """Merge ghosts of `self_uid` into its entry and drop them from the roster."""
    me = next((entry for entry in roster if entry.uid == self_uid), None)
    if me is None:
        return GhostResolution(roster=list(roster), me=None, ghosts=[])
    
    ghosts = find_ghosts(roster, me)
    if not ghosts:
        return GhostResolution(roster=list(roster), me=me, ghosts=[])
    
    merged = me
    for ghost in ghosts:
        merged = merge_ghost(merged, ghost)
    
    ghost_uids = {ghost.uid for ghost in ghosts}
    resolved = [
        merged if entry.uid == me.uid else entry
        for entry in roster
        if entry.uid not in ghost_uids
    ]
    return GhostResolution(roster=resolved, me=merged, ghosts=ghosts)
