import json

import pytest

from quraniq.context import ClientContext, GroupSummary, PendingMigration
from quraniq.utils.dates import PuzzleCalendar, previous_date_string, utc_date_string
from quraniq.utils.group_codes import generate_group_code, is_valid_group_code, normalize_group_code
from quraniq.utils.local_state import LocalStateStore


def test_local_state_persists_to_file(tmp_path):
    path = tmp_path / 'state' / 'client.json'
    store = LocalStateStore(str(path))
    store.set('display_name', 'Amina')
    store.set('groups', {'ABCDEF': {'name': 'Family', 'memberCount': 2}})
    
    reopened = LocalStateStore(str(path))
    assert reopened.get('display_name') == 'Amina'
    assert reopened.get('groups')['ABCDEF']['memberCount'] == 2
    assert json.loads(path.read_text(encoding='utf-8'))['display_name'] == 'Amina'


def test_local_state_survives_corrupt_file(tmp_path):
    path = tmp_path / 'client.json'
    path.write_text('{not json', encoding='utf-8')
    store = LocalStateStore(str(path))
    assert store.get('identity') is None


def test_local_state_returns_copies():
    store = LocalStateStore()
    store.set('verses', {'refs': ['1:1']})
    store.get('verses')['refs'].append('1:2')
    assert store.get('verses') == {'refs': ['1:1']}


def test_identity_created_once():
    ctx = ClientContext(local_state=LocalStateStore())
    uid = ctx.identity
    assert uid
    assert ctx.identity == uid
    ctx.replace_identity('restored')
    assert ctx.identity == 'restored'


def test_active_group_stays_valid():
    ctx = ClientContext(local_state=LocalStateStore())
    ctx.add_group('AAAAAA', GroupSummary('One'))
    ctx.add_group('BBBBBB', GroupSummary('Two'))
    assert ctx.active_group_code == 'BBBBBB'
    ctx.remove_group('BBBBBB')
    assert ctx.active_group_code == 'AAAAAA'
    ctx.remove_group('AAAAAA')
    assert ctx.active_group_code is None
    assert not ctx.has_groups()


def test_pending_migration_marker_round_trip():
    ctx = ClientContext(local_state=LocalStateStore())
    assert ctx.pending_migration is None
    marker = PendingMigration(old_uid='old', group_codes=('ABCDEF',), display_name='Amina', timestamp='t')
    ctx.set_pending_migration(marker)
    assert ctx.local_state.get('pending_migration')['oldUid'] == 'old'
    assert ctx.pending_migration == marker
    ctx.clear_pending_migration()
    assert ctx.pending_migration is None


def test_messages_drain():
    ctx = ClientContext(local_state=LocalStateStore())
    ctx.notify('first')
    ctx.notify('second')
    assert ctx.pop_messages() == ['first', 'second']
    assert ctx.pop_messages() == []


def test_puzzle_calendar_prefers_active_puzzle_date():
    calendar = PuzzleCalendar()
    assert calendar.today() == utc_date_string()
    calendar.set_active_puzzle_date('2026-02-28')
    assert calendar.today() == '2026-02-28'
    with pytest.raises(ValueError):
        calendar.set_active_puzzle_date('28/02/2026')


def test_previous_date_string():
    assert previous_date_string('2026-03-01') == '2026-02-28'
    assert previous_date_string('2028-03-01') == '2028-02-29'
    assert previous_date_string('garbage') is None


def test_group_codes():
    code = generate_group_code()
    assert is_valid_group_code(code)
    assert normalize_group_code('  abc234 ') == 'ABC234'
    assert not is_valid_group_code('ABC10O')
    assert not is_valid_group_code('ABCDE')


def test_notified_keys_from_past_days_are_pruned():
    ctx = ClientContext(local_state=LocalStateStore(), calendar=PuzzleCalendar('2026-03-01'))
    assert ctx.mark_notified('ABCDEF_bilal_2026-02-28')
    
    ctx.calendar.set_active_puzzle_date('2026-03-02')
    assert ctx.mark_notified('ABCDEF_bilal_2026-03-02')
    assert not ctx.mark_notified('ABCDEF_bilal_2026-03-02')
    assert ctx.local_state.get('notified') == ['ABCDEF_bilal_2026-03-02']
