"""
Backfill scoring from locally persisted game state.

Re-derives each mode's crescents from the client's saved completion state for
today's puzzle, so games finished before joining a group (or while offline)
still reach the leaderboard. Only finished games contribute.
"""

from typing import Any, Dict, Mapping, Optional

GameState = Mapping[str, Any]


def connections_score(state: GameState) -> int:
    """1 per solved row, +1 per solved row whose verses were all explored. Max 8."""
    solved = state.get('solved') or []
    correct_count = state.get('correctCount')
    if correct_count is None:
        correct_count = len(solved)
    explored = set(state.get('exploredVerses') or [])
    
    score = 0
    for i, row in enumerate(solved):
        if i >= correct_count:
            break
        score += 1
        items = (row or {}).get('items') or []
        refs = {item.get('ref') for item in items if isinstance(item, dict) and item.get('ref')}
        row_total = len(refs) or len(items)
        row_explored = sum(1 for ref in refs if ref in explored)
        if row_explored >= row_total:
            score += 1
    return min(8, score)


def harf_score(state: GameState) -> int:
    """5 for a first-row win down to 1, minus hints. A win means the last row is all correct."""
    evaluations = state.get('evaluations') or []
    last_row = evaluations[-1] if evaluations else []
    won = len(last_row) > 0 and all(e == 'correct' for e in last_row)
    if not won:
        return 0
    base = max(1, 6 - len(evaluations))
    return max(0, base - (state.get('hintsUsed') or 0))


def deduction_score(state: GameState) -> int:
    """5 for solving with at most one clue, one less per extra clue, minimum 1."""
    if not state.get('won'):
        return 0
    clues = state.get('cluesRevealed') or 0
    if clues <= 1:
        return 5
    return max(1, 6 - clues)


def scramble_score(state: GameState) -> int:
    if not state.get('won'):
        return 0
    return max(1, 5 - (state.get('hintsUsed') or 0))


_SCORERS = (
    ('connections', ('connections',), connections_score),
    ('harf', ('harf', 'wordle'), harf_score),
    ('deduction', ('deduction',), deduction_score),
    ('scramble', ('scramble',), scramble_score),
)


def derive_mode_scores(local_states: Mapping[str, Optional[GameState]]) -> Dict[str, int]:
    """
    Derive crescents for every finished game in today's local state.
    
    Args:
        local_states: Game mode name -> saved state for today's puzzle.
            'wordle' is accepted as the legacy key for Harf by Harf.
    
    Returns:
        Score field -> crescents, for finished games only
    """
    derived = {}
    for score_field, keys, scorer in _SCORERS:
        state = next((local_states.get(k) for k in keys if local_states.get(k)), None)
        if state and state.get('gameOver'):
            derived[score_field] = scorer(state)
    return derived


def best_local_streak(stats: Optional[Mapping[str, Any]]) -> int:
    """Best current streak across the per-mode play statistics."""
    best = 0
    for mode in ('connections', 'wordle', 'deduction', 'scramble'):
        mode_stats = (stats or {}).get(mode)
        if isinstance(mode_stats, Mapping):
            best = max(best, int(mode_stats.get('streak') or 0))
    return best
