import pytest

from quraniq.data_models.leaderboard import ModeScores, RosterEntry
from quraniq.operations.ranking import calculate_badges, sort_roster


def make_entry(uid, **fields):
    return RosterEntry(uid=uid, display_name=uid, **fields)


def uids(roster):
    return [e.uid for e in roster]


def test_sort_by_total_with_tie_breaks():
    roster = [
        make_entry('a', period_total=10, today_total=1, quran_percent=1.0),
        make_entry('b', period_total=20, today_total=0),
        make_entry('c', period_total=10, today_total=3),
        make_entry('d', period_total=10, today_total=1, quran_percent=4.5),
    ]
    assert uids(sort_roster(roster, 'total')) == ['b', 'c', 'd', 'a']


def test_sort_by_today():
    roster = [
        make_entry('a', period_total=50, today_total=2),
        make_entry('b', period_total=5, today_total=7),
        make_entry('c', period_total=60, today_total=2),
    ]
    assert uids(sort_roster(roster, 'today')) == ['b', 'c', 'a']


def test_sort_by_quran():
    roster = [
        make_entry('a', quran_percent=0.5, period_total=9),
        make_entry('b', quran_percent=12.3),
        make_entry('c', quran_percent=0.5, period_total=9, today_total=1),
    ]
    assert uids(sort_roster(roster, 'quran')) == ['b', 'c', 'a']


def test_sort_keeps_input_order_for_full_ties():
    roster = [make_entry('x', period_total=4), make_entry('y', period_total=4), make_entry('z', period_total=4)]
    assert uids(sort_roster(roster, 'total')) == ['x', 'y', 'z']


def test_sort_rejects_unknown_key():
    with pytest.raises(ValueError):
        sort_roster([], 'alphabetical')


def test_no_badge_when_nobody_scored():
    roster = [make_entry('a'), make_entry('b')]
    assert calculate_badges(roster, 'total') == []


def test_badge_goes_to_strict_maximum():
    roster = [
        make_entry('a', all_time_scores=ModeScores(harf=4)),
        make_entry('b', all_time_scores=ModeScores(harf=9, juz=1)),
    ]
    badges = {b.mode: b for b in calculate_badges(roster, 'total')}
    assert set(badges) == {'harf', 'juz'}
    assert badges['harf'].uid == 'b'
    assert badges['harf'].context == 'overall'
    assert badges['juz'].uid == 'b'


def test_badge_tie_broken_by_secondary_column():
    roster = [
        make_entry('a', all_time_scores=ModeScores(connections=6), today_scores=ModeScores(connections=1)),
        make_entry('b', all_time_scores=ModeScores(connections=6), today_scores=ModeScores(connections=3)),
    ]
    badges = calculate_badges(roster, 'total')
    assert [(b.mode, b.uid) for b in badges] == [('connections', 'b')]


def test_full_tie_goes_to_higher_ranked_entry():
    roster = [
        make_entry('first', all_time_scores=ModeScores(scramble=5), today_scores=ModeScores(scramble=2)),
        make_entry('second', all_time_scores=ModeScores(scramble=5), today_scores=ModeScores(scramble=2)),
    ]
    assert calculate_badges(roster, 'total')[0].uid == 'first'


def test_today_sort_uses_today_scores_as_primary():
    roster = [
        make_entry('veteran', all_time_scores=ModeScores(deduction=40), today_scores=ModeScores(deduction=2)),
        make_entry('rookie', all_time_scores=ModeScores(deduction=5), today_scores=ModeScores(deduction=5)),
    ]
    today_badges = calculate_badges(roster, 'today')
    overall_badges = calculate_badges(roster, 'total')
    assert today_badges[0].uid == 'rookie'
    assert today_badges[0].context == 'today'
    assert overall_badges[0].uid == 'veteran'


def test_one_entry_can_hold_several_badges():
    roster = [
        make_entry('star', all_time_scores=ModeScores(connections=8, harf=5, deduction=5, scramble=4, juz=2)),
        make_entry('other', all_time_scores=ModeScores(connections=1)),
    ]
    badges = calculate_badges(roster, 'quran')
    assert len(badges) == 5
    assert {b.uid for b in badges} == {'star'}
