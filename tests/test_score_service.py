from quraniq.constants import ScoreConstants


async def stored_row(h, uid, puzzle_date):
    return (await h.get_scores_by_date(uid)).get(puzzle_date)


def test_submit_ratchets_upwards(run):
    async def scenario(h):
        ctx = h.client('player-1')
        assert await h.scores.submit_score(ctx, 'harf', 3)
        assert await h.scores.submit_score(ctx, 'harf', 1)
        row = await stored_row(h, 'player-1', '2026-03-01')
        assert row.harf == 3
        
        assert await h.scores.submit_score(ctx, 'harf', 5)
        row = await stored_row(h, 'player-1', '2026-03-01')
        assert row.harf == 5
    run(scenario)


def test_total_is_sum_of_modes(run):
    async def scenario(h):
        ctx = h.client('player-1')
        for mode, crescents in (('connections', 6), ('wordle', 4), ('deduction', 5), ('scramble', 3), ('juz', 2)):
            assert await h.scores.submit_score(ctx, mode, crescents)
        row = await stored_row(h, 'player-1', '2026-03-01')
        assert row.harf == 4
        assert row.total == sum(getattr(row, f) for f in ScoreConstants.SCORE_FIELDS) == 20
    run(scenario)


def test_scores_keyed_by_puzzle_date(run):
    async def scenario(h):
        ctx = h.client('player-1', puzzle_date='2026-02-28')
        assert await h.scores.submit_score(ctx, 'scramble', 4)
        ctx.calendar.set_active_puzzle_date('2026-03-01')
        assert await h.scores.submit_score(ctx, 'scramble', 2)
        rows = await h.get_scores_by_date('player-1')
        assert rows['2026-02-28'].scramble == 4
        assert rows['2026-03-01'].scramble == 2
    run(scenario)


def test_invalid_submissions_are_rejected(run):
    async def scenario(h):
        ctx = h.client('player-1')
        assert not await h.scores.submit_score(ctx, 'chess', 3)
        assert not await h.scores.submit_score(ctx, 'harf', 9)
        assert not await h.scores.submit_score(ctx, 'harf', -1)
        assert len(ctx.pop_messages()) == 3
        assert await h.get_scores_by_date('player-1') == {}
    run(scenario)


def test_streak_stamped_from_local_stats(run):
    async def scenario(h):
        ctx = h.client('player-1')
        ctx.local_state.set('stats', {'connections': {'streak': 4}, 'scramble': {'streak': 9}})
        assert await h.scores.submit_score(ctx, 'juz', 1)
        row = await stored_row(h, 'player-1', '2026-03-01')
        assert row.streak == 9
    run(scenario)


def test_submit_invalidates_group_cache(run):
    async def scenario(h):
        ctx = await h.named_client('player-1', 'Amina')
        code = await h.groups.create_group(ctx, 'Family')
        await h.leaderboards.fetch_group_leaderboard(ctx, code)
        assert code in ctx.leaderboard_cache
        
        assert await h.scores.submit_score(ctx, 'harf', 2)
        assert code not in ctx.leaderboard_cache
    run(scenario)


def test_backfill_only_runs_with_groups(run):
    async def scenario(h):
        ctx = h.client('player-1')
        states = {'scramble': {'gameOver': True, 'won': True}}
        assert not await h.scores.backfill_today_scores(ctx, states)
        assert await h.get_scores_by_date('player-1') == {}
    run(scenario)


def test_backfill_writes_only_higher_values(run):
    async def scenario(h):
        ctx = await h.named_client('player-1', 'Amina')
        await h.groups.create_group(ctx, 'Family')
        assert await h.scores.submit_score(ctx, 'deduction', 5)
        
        states = {
            'deduction': {'gameOver': True, 'won': True, 'cluesRevealed': 3},
            'scramble': {'gameOver': True, 'won': True, 'hintsUsed': 1},
        }
        assert await h.scores.backfill_today_scores(ctx, states)
        row = await stored_row(h, 'player-1', '2026-03-01')
        assert row.deduction == 5
        assert row.scramble == 4
        assert row.total == 9
        
        # Nothing new to write the second time
        assert not await h.scores.backfill_today_scores(ctx, states)
    run(scenario)


def test_history_read_is_bounded(run):
    async def scenario(h):
        ctx = h.client('player-1')
        for day in range(1, 29):
            ctx.calendar.set_active_puzzle_date(f'2026-02-{day:02d}')
            await h.scores.submit_score(ctx, 'juz', 1)
        record = await h.scores.get_score_record('player-1', limit=5)
        assert sorted(record.entries) == [f'2026-02-{day}' for day in range(24, 29)]
        full = await h.scores.get_score_record('player-1', limit=0)
        assert len(full.entries) == 28
    run(scenario)


def test_prune_runs_once_per_client(run):
    async def scenario(h):
        ctx = h.client('player-1', puzzle_date='2026-02-10')
        await h.scores.submit_score(ctx, 'harf', 3)
        ctx.calendar.set_active_puzzle_date('2026-02-14')
        await h.scores.submit_score(ctx, 'harf', 4)
        
        assert await h.scores.prune_scores_before(ctx, '2026-02-13')
        assert list(await h.get_scores_by_date('player-1')) == ['2026-02-14']
        assert ctx.local_state.get('score_reset_v1') == '2026-02-13'
        
        # Marker present: a second call does nothing
        ctx.calendar.set_active_puzzle_date('2026-02-01')
        await h.scores.submit_score(ctx, 'harf', 1)
        assert not await h.scores.prune_scores_before(ctx, '2026-02-13')
        assert '2026-02-01' in await h.get_scores_by_date('player-1')
    run(scenario)


def test_submit_publishes_local_verse_stats(run):
    async def scenario(h):
        ctx = h.client('player-1')
        assert await h.scores.submit_score(ctx, 'harf', 1)
        assert (await h.get_profile('player-1')).verses_explored == 0
        
        ctx.local_state.set('verses', {'refs': [f'2:{i}' for i in range(1, 287)]})
        assert await h.scores.submit_score(ctx, 'harf', 2)
        profile = await h.get_profile('player-1')
        assert profile.verses_explored == 286
        assert profile.quran_percent == 4.6
    run(scenario)
