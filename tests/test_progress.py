import base64
import json

from quraniq.context import ClientContext, GroupSummary
from quraniq.operations.progress import decode_save_code, export_progress, import_progress
from quraniq.utils.dates import PuzzleCalendar
from quraniq.utils.local_state import LocalStateStore


def client(uid):
    state = LocalStateStore()
    state.set(ClientContext.IDENTITY_KEY, uid)
    return ClientContext(local_state=state, calendar=PuzzleCalendar('2026-03-01'))


def encode(data):
    return 'QIQ:' + base64.b64encode(json.dumps(data).encode('utf-8')).decode('ascii')


def test_export_contents():
    ctx = client('uid-1')
    ctx.display_name = 'عائشة'
    ctx.local_state.set('stats', {'connections': {'played': 3, 'streak': 2}})
    ctx.local_state.set('verses', {'refs': ['1:1', '2:255']})
    ctx.add_group('ABCDEF', GroupSummary(name='Family', member_count=3))
    
    code = export_progress(ctx)
    assert code.startswith('QIQ:')
    data = decode_save_code(code)
    assert data['v'] == 2
    assert data['stats'] == {'connections': {'played': 3, 'streak': 2}}
    assert data['verses'] == {'refs': ['1:1', '2:255']}
    assert data['theme'] == 'dark'
    assert data['firebase'] == {
        'uid': 'uid-1',
        'displayName': 'عائشة',
        'groups': {'ABCDEF': {'name': 'Family', 'memberCount': 3}},
        'activeGroupCode': 'ABCDEF',
    }
    assert data['exported']


def test_round_trip_onto_fresh_client():
    old = client('old-uid')
    old.display_name = 'Amina'
    old.local_state.set('stats', {'wordle': {'played': 10, 'streak': 4}})
    old.local_state.set('theme', 'light')
    old.add_group('ABCDEF', GroupSummary(name='Family', member_count=2))
    old.add_group('GHJKLM', GroupSummary(name='Work', member_count=5))
    
    new = client('new-uid')
    new.local_state.set('verses', {'refs': ['3:1']})
    result = import_progress(new, export_progress(old))
    
    assert result.success
    assert new.local_state.get('stats') == old.local_state.get('stats')
    assert new.local_state.get('theme') == 'light'
    assert new.display_name == 'Amina'
    assert set(new.groups) == {'ABCDEF', 'GHJKLM'}
    assert new.active_group_code == 'GHJKLM'
    assert new.identity == 'new-uid'
    
    marker = new.pending_migration
    assert marker.old_uid == 'old-uid'
    assert set(marker.group_codes) == {'ABCDEF', 'GHJKLM'}
    assert marker.display_name == 'Amina'


def test_import_unions_explored_verses():
    ctx = client('uid-1')
    ctx.local_state.set('verses', {'refs': ['1:1', '1:2']})
    blob = encode({'v': 2, 'stats': {'scramble': {}}, 'verses': {'refs': ['1:2', '112:1']}})
    assert import_progress(ctx, blob).success
    assert ctx.local_state.get('verses') == {'refs': ['1:1', '1:2', '112:1']}
    assert ctx.pending_migration is None


def test_import_rejects_bad_codes():
    ctx = client('uid-1')
    assert not import_progress(ctx, '').success
    assert 'QIQ:' in import_progress(ctx, 'hello').message
    assert not import_progress(ctx, 'QIQ:not base64!').success
    assert import_progress(ctx, encode({'v': 2})).message == 'Invalid or corrupted save data.'
    assert not import_progress(ctx, encode({'stats': {'a': 1}})).success
    assert ctx.local_state.get('stats') is None


def test_player_without_stats_can_still_move_groups():
    old = client('old-uid')
    old.display_name = 'Amina'
    old.add_group('ABCDEF', GroupSummary(name='Family', member_count=2))
    
    new = client('new-uid')
    result = import_progress(new, export_progress(old))
    
    assert result.success
    assert new.local_state.get('stats') == {}
    assert new.pending_migration.old_uid == 'old-uid'
    assert new.pending_migration.group_codes == ('ABCDEF',)


def test_import_rejects_non_object_stats():
    ctx = client('uid-1')
    assert not import_progress(ctx, encode({'v': 2, 'stats': ['not', 'a', 'dict']})).success
