from quraniq.operations.backfill import (
    best_local_streak,
    connections_score,
    deduction_score,
    derive_mode_scores,
    harf_score,
    scramble_score,
)


def row(*refs):
    return {'items': [{'ref': ref} for ref in refs]}


def test_connections_row_bonus_needs_every_verse_explored():
    state = {
        'solved': [row('1:1', '1:2'), row('2:255', '2:256'), row('3:1')],
        'exploredVerses': ['1:1', '1:2', '2:255'],
    }
    # 3 rows solved, only the first fully explored
    assert connections_score(state) == 4


def test_connections_capped_at_eight():
    rows = [row(f'{i}:1') for i in range(1, 6)]
    state = {'solved': rows, 'exploredVerses': [f'{i}:1' for i in range(1, 6)]}
    assert connections_score(state) == 8


def test_connections_respects_correct_count():
    state = {'solved': [row('1:1'), row('1:2')], 'correctCount': 1, 'exploredVerses': []}
    assert connections_score(state) == 1


def test_harf_win_scoring():
    won_first_row = {'evaluations': [['correct'] * 5]}
    won_third_row = {'evaluations': [['absent'] * 5, ['present'] * 5, ['correct'] * 5], 'hintsUsed': 1}
    assert harf_score(won_first_row) == 5
    assert harf_score(won_third_row) == 2


def test_harf_loss_scores_zero():
    lost = {'evaluations': [['absent'] * 5] * 6}
    assert harf_score(lost) == 0
    assert harf_score({}) == 0


def test_harf_hints_cannot_go_negative():
    assert harf_score({'evaluations': [['absent']] * 5 + [['correct']], 'hintsUsed': 3}) == 0


def test_deduction_by_clues_revealed():
    assert [deduction_score({'won': True, 'cluesRevealed': n}) for n in (0, 1, 2, 3, 4, 5, 9)] == [5, 5, 4, 3, 2, 1, 1]
    assert deduction_score({'won': False, 'cluesRevealed': 1}) == 0


def test_scramble_scoring():
    assert scramble_score({'won': True}) == 5
    assert scramble_score({'won': True, 'hintsUsed': 2}) == 3
    assert scramble_score({'won': True, 'hintsUsed': 7}) == 1
    assert scramble_score({'won': False}) == 0


def test_derive_only_counts_finished_games():
    derived = derive_mode_scores({
        'connections': {'gameOver': False, 'solved': [row('1:1')]},
        'wordle': {'gameOver': True, 'evaluations': [['correct'] * 5]},
        'deduction': {'gameOver': True, 'won': True, 'cluesRevealed': 2},
        'scramble': None,
    })
    assert derived == {'harf': 5, 'deduction': 4}


def test_best_local_streak():
    stats = {'connections': {'streak': 2}, 'wordle': {'streak': 7}, 'scramble': 'corrupt'}
    assert best_local_streak(stats) == 7
    assert best_local_streak(None) == 0
